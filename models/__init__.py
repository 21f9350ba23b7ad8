from .profile import Profile  # noqa: F401
from .reseller import Reseller  # noqa: F401
from .client import Client  # noqa: F401
from .subscription_plan import SubscriptionPlan  # noqa: F401

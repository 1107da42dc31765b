"""External resources: AWS media pipeline, Stripe and worker Lambdas."""

from golive.resources.media import MediaResources
from golive.resources.stripe_gateway import StripeGateway
from golive.resources.workers import PasswordMailer, ProvisioningDispatcher

__all__ = [
    "MediaResources",
    "PasswordMailer",
    "ProvisioningDispatcher",
    "StripeGateway",
]

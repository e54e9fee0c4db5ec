class ProviderError(Exception):
    """An external provider (transcoding, storage, generation) call failed."""
    pass


class WebhookVerificationError(Exception):
    """An inbound webhook's signature or timestamp could not be verified."""
    pass

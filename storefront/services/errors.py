# storefront/services/errors.py


class StoreError(Exception):
    """Expected, client-correctable failure. Routes render it as {ok: false}."""
    status = 400

    def __init__(self, reason: str, message: str | None = None, status: int | None = None):
        super().__init__(message or reason)
        self.reason = reason
        self.message = message or reason
        if status is not None:
            self.status = status


class InputError(StoreError):
    pass


class CatalogError(StoreError):
    pass


class PricingError(StoreError):
    pass


class PromotionError(StoreError):
    def __init__(self, reason, message=None, status=None, fallback_quote=None):
        super().__init__(reason, message, status)
        # zero-discount quote the UI can still display
        self.fallback_quote = fallback_quote

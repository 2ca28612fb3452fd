class RelayError(Exception):
    """Base class for errors the checkout relay turns into HTTP responses."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnknownProductError(RelayError):
    status_code = 400

    def __init__(self, product_id):
        super().__init__("Invalid product ID")
        self.product_id = product_id


class ProviderError(RelayError):
    status_code = 500


class WebhookVerificationError(RelayError):
    status_code = 400

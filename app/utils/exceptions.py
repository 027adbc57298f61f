class ServiceError(Exception):
    def __init__(self, code="SERVICE_ERROR", message="Service error", details=None, status=400):
        self.code = code
        self.message = message
        self.details = details or {}
        self.status = status
        super().__init__(message)


def not_found(message, details=None):
    return ServiceError("NOT_FOUND", message, details, status=404)


def bad_request(message, details=None):
    return ServiceError("BAD_REQUEST", message, details, status=400)


def forbidden(message, details=None):
    return ServiceError("FORBIDDEN", message, details, status=403)

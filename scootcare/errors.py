class ScootCareError(Exception):
    """Base class for every error raised by the support service."""


class ValidationError(ScootCareError):
    """Malformed input, e.g. an empty question or answer."""


class NotFoundError(ScootCareError):
    """The entry, session, ticket or order id does not exist."""


class SessionClosedError(ScootCareError):
    """Attempt to change a resolved (read-only) conversation."""


class UnknownResolverError(ScootCareError):
    """A dynamic knowledge entry names a resolver that is not registered."""


class UpstreamError(ScootCareError):
    """Failure reported by the auth, data, storage or realtime collaborator."""


class ConcurrencyError(UpstreamError):
    """Optimistic version check failed: someone else wrote first."""


class AuthenticationError(ScootCareError):
    pass


class PermissionDeniedError(ScootCareError):
    pass

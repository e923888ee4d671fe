"""Repository-level failures translated to HTTP responses by the API layer."""


class RepositoryError(ValueError):
    status_code = 400


class NotFoundError(RepositoryError):
    status_code = 404


class DuplicateError(RepositoryError):
    status_code = 400


class InvalidStateError(RepositoryError):
    status_code = 400

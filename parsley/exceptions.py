"""Error taxonomy shared by the request handlers and the transport layer."""


class ParsleyError(Exception):
    """Base error; ``status_code`` is what the HTTP layer reports."""

    status_code = 500


class InvalidInput(ParsleyError):
    """A required field is missing or a value cannot be parsed."""

    status_code = 400


class NotFound(ParsleyError):
    """A vertex id does not resolve."""

    status_code = 400


class InvalidReference(ParsleyError):
    """A vertex id resolves, but to the wrong kind of vertex."""

    status_code = 400


class MalformedAttributes(ParsleyError):
    """The attribute payload cannot be merged onto a vertex."""

    status_code = 500

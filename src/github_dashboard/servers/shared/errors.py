ExtraInfoType = dict[str, str | None]


class ServerError(Exception):
    """A request error from the GitHub Dashboard server."""

    def __init__(self, message: str, extra_info: ExtraInfoType | None = None):
        msg = message
        if extra_info:
            msg += " (" + ", ".join([f"{key}: {value}" for key, value in extra_info.items() if value is not None]) + ")"
        super().__init__(msg)


class CodeReviewUnavailableError(ServerError):
    """No language model is configured for code reviews."""

    def __init__(self):
        super().__init__(message="Code review is not available. Set GOOGLE_API_KEY to enable code reviews.")


class MissingAccessTokenError(ServerError):
    """A request reached a GitHub route without an access token."""

    def __init__(self):
        super().__init__(message="An access token is required in the Authorization header.")

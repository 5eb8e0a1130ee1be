ExtraInfoType = dict[str, str | None]


class ClientError(Exception):
    """A request error from the GitHub Dashboard client."""

    def __init__(self, message: str, extra_info: ExtraInfoType | None = None):
        msg = message
        if extra_info:
            msg += " (" + ", ".join([f"{key}: {value}" for key, value in extra_info.items() if value is not None]) + ")"
        super().__init__(msg)


class RequestError(ClientError):
    """A request error from the GitHub Dashboard client."""

    def __init__(self, action: str, message: str | None = None, extra_info: ExtraInfoType | None = None):
        if not extra_info:
            extra_info = {}
        super().__init__(message="A request error occured.", extra_info={"action": action, "message": message, **extra_info})


class ResourceNotFoundError(RequestError):
    """A not found error from the GitHub Dashboard client."""

    def __init__(self, action: str, resource: str | None = None, extra_info: ExtraInfoType | None = None):
        if not extra_info:
            extra_info = {}
        super().__init__(
            action=action,
            message="The resource could not be found.",
            extra_info={"resource": resource, **extra_info},
        )


class AuthorizationError(RequestError):
    """GitHub rejected the credential used for the request."""

    def __init__(self, action: str, extra_info: ExtraInfoType | None = None):
        super().__init__(action=action, message="The credential was rejected by GitHub.", extra_info=extra_info)


class OAuthExchangeError(ClientError):
    """The OAuth code could not be exchanged for an access token."""

    def __init__(self, message: str | None = None, extra_info: ExtraInfoType | None = None):
        if not extra_info:
            extra_info = {}
        super().__init__(message="The OAuth code exchange failed.", extra_info={"message": message, **extra_info})

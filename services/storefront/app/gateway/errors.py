"""
Storefront — Remote gateway error taxonomy

  GatewayError
   ├── ConfigError          script URL missing
   │    └── HtmlResponseError   an HTML page came back instead of JSON
   ├── TransportError       network failure, timeout, non-2xx
   ├── FormatError          body is not JSON, or not a shape we know
   └── AppError             the script answered success:false / error
"""


class GatewayError(Exception):
    """Base class for every failure talking to a remote script or API."""

    kind = "gateway"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigError(GatewayError):
    kind = "config"


class HtmlResponseError(ConfigError):
    """The script endpoint served a login/redirect page.

    Almost always a deployment problem (not deployed as a public web app),
    so it is reported as a configuration error rather than as missing data.
    """

    kind = "html"


class TransportError(GatewayError):
    kind = "transport"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class FormatError(GatewayError):
    kind = "format"


class AppError(GatewayError):
    kind = "app"

from requests.auth import AuthBase


class HTTPBearerAuth(AuthBase):
    """Sends the access token as a bearer token"""

    def __init__(self, access_token: str) -> None:
        if access_token.lower().startswith("bearer "):
            access_token = access_token[7:]
        self.access_token = access_token

    def __eq__(self, other: object) -> bool:
        return self.access_token == getattr(other, "access_token", None)

    def __ne__(self, other: object) -> bool:
        return not self == other

    def __call__(self, r):
        r.headers["Authorization"] = f"Bearer {self.access_token}"
        return r

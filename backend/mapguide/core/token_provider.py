class TokenProvider:
    """
    Holds the bearer token the place-storage API expects.
    The map routes refresh it from the Authorization header of each call.
    """

    def __init__(self, token: str | None = None):
        self._token = token

    def get_token(self) -> str | None:
        return self._token

    def set_token(self, token: str | None):
        self._token = token

    def set_from_header(self, authorization: str | None):
        if not authorization:
            return
        scheme, _, value = authorization.partition(" ")
        if scheme.lower() == "bearer" and value.strip():
            self._token = value.strip()

    def auth_headers(self) -> dict:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

import jwt

from rally_roster.dynamodb.secrets_table import SecretsTable


class JwtWrapper:
    """
    Verifies HS256 access tokens issued by the authentication service. Tokens carry
    the account id in 'sub' and, optionally, a 'role' claim.
    """

    def __init__(self) -> None:
        pass

    def verify_token(self, token: str, secrets_table: SecretsTable) -> dict | None:
        try:
            jwt_secret = secrets_table.get_jwt_secret_key()
            payload = jwt.decode(token, jwt_secret, algorithms=["HS256"])
            return payload
        except jwt.PyJWTError:
            return None
        except KeyError:
            return None

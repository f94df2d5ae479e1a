"""Authentication utilities: password hashing and client ids."""

import secrets

from passlib.context import CryptContext

from study_dashboard.storage import SESSION_SECRET_KEY

# pbkdf2 keeps hashing pure-python; no native bcrypt build is needed
PWD_CONTEXT = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password for storage."""
    return PWD_CONTEXT.hash(plain_password)


def verify_password(plain_password: str, stored_password: str | None) -> bool:
    """Verify a plaintext password against what is stored for a user.

    Records written before hashing was introduced hold the password itself;
    those are compared directly.
    """
    if not stored_password:
        return False
    if PWD_CONTEXT.identify(stored_password) is None:
        return secrets.compare_digest(plain_password.encode(), stored_password.encode())
    return PWD_CONTEXT.verify(plain_password, stored_password)


def create_client_id() -> str:
    """Generate a random id for a new browser client."""
    return secrets.token_urlsafe(16)


def load_session_secret(store) -> str:
    """Return the cookie-signing secret kept in ``store``, creating it on
    first use.

    Client ids live in the signed session cookie and select each client's
    store, so the secret must outlive the process.
    """
    secret = store.get(SESSION_SECRET_KEY)
    if secret is None:
        secret = secrets.token_urlsafe(32)
        with store.transaction():
            store.set(SESSION_SECRET_KEY, secret)
    return secret

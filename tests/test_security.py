import jwt
import pytest
from fastapi import HTTPException

from security import create_access_token, decode_token, has_permission, hash_password, require_permission, verify_password


def test_password_hashing():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("secret123", None)


def test_token_carries_identity_claims(customer):
    payload = decode_token(create_access_token(customer))
    assert payload["sub"] == str(customer["_id"])
    assert payload["email"] == "alice@example.com"
    assert payload["role"] == "customer"
    assert payload["blocked"] is False


def test_token_signed_with_other_secret_is_invalid(customer):
    token = jwt.encode({"sub": str(customer["_id"])}, "another-secret", algorithm="HS256")
    with pytest.raises(HTTPException) as exc:
        decode_token(token)
    assert exc.value.status_code == 401
    assert exc.value.detail == "Invalid token"


@pytest.mark.parametrize("account,expected", [
    ({"role": "customer"}, False),
    ({"role": "admin", "is_super_admin": True, "permissions": ["manage_orders"]}, True),
    ({"role": "admin", "permissions": []}, True),
    ({"role": "admin", "permissions": ["manage_products"]}, True),
    ({"role": "admin", "permissions": ["manage_orders"]}, False),
])
def test_has_permission(account, expected):
    assert has_permission(account, "manage_products") is expected


def test_unknown_permission_is_a_programming_error():
    with pytest.raises(ValueError):
        require_permission("launch_rockets")


def test_health_endpoint(client):
    res = client.get("/")
    assert res.json()["success"] is True

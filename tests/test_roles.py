import pytest

from utils.errors import AuthorizationError, ErrorType
from utils.roles import Role, require_role


def test_roles_are_totally_ordered():
    assert Role.TOUR < Role.MEMBER < Role.VALIDATOR < Role.ADMIN


@pytest.mark.parametrize(
    "value, expected",
    [
        ("ADMIN", Role.ADMIN),
        ("validator", Role.VALIDATOR),
        (" member ", Role.MEMBER),
        (Role.VALIDATOR, Role.VALIDATOR),
        ("SUPERUSER", Role.TOUR),
        ("", Role.TOUR),
        (None, Role.TOUR),
    ],
)
def test_parse(value, expected):
    assert Role.parse(value) is expected


def test_higher_role_satisfies_lower_requirement():
    assert require_role("ADMIN", Role.VALIDATOR) is Role.ADMIN
    assert require_role("VALIDATOR", Role.VALIDATOR) is Role.VALIDATOR


def test_insufficient_role_is_rejected_with_generic_message():
    with pytest.raises(AuthorizationError) as excinfo:
        require_role("MEMBER", Role.ADMIN)

    error = excinfo.value
    assert error.error_type == ErrorType.AUTHORIZATION
    assert error.status_code == 403
    assert error.message == "Forbidden"
    assert error.details == {"required_role": "ADMIN", "current_role": "MEMBER"}


def test_unknown_role_is_treated_as_tour():
    with pytest.raises(AuthorizationError):
        require_role("ROOT", Role.MEMBER)

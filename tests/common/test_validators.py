import pytest

from dayflow_hrms.common.validators import require_bool, require_max_length, require_min_length
from dayflow_hrms.core.exceptions import ValidationError


@pytest.mark.parametrize("raw", [True, 1, "true", "TRUE", "1", "yes", " on "])
def test_require_bool_truthy_values(raw):
    assert require_bool(raw, "flag") is True


@pytest.mark.parametrize("raw", [False, 0, "false", "False", "0", "no", "off"])
def test_require_bool_falsy_values(raw):
    assert require_bool(raw, "flag") is False


@pytest.mark.parametrize("raw", ["maybe", "", None, 2, 0.5, [], {}])
def test_require_bool_rejects_everything_else(raw):
    with pytest.raises(ValidationError, match="flag must be true or false"):
        require_bool(raw, "flag")


def test_length_checks_reject_non_strings():
    assert require_max_length(None, "Notes", 10) is None

    with pytest.raises(ValidationError, match="Notes must be a string"):
        require_max_length(12345, "Notes", 10)
    with pytest.raises(ValidationError, match="at least 6"):
        require_min_length(123456, "Password", 6)

import pytest

from openplant.constants import URL, Command, Flag


def test_command_codes():
    assert Command.SELECT == 110
    assert Command(150) is Command.REPLACE


@pytest.mark.parametrize(
    "value, name",
    [(110, "SELECT"), (120, "UPDATE"), (130, "INSERT"), (140, "DELETE"), (150, "REPLACE")],
)
def test_command_lookup_by_value(value, name):
    assert Command(value).name == name


def test_unknown_command_rejected():
    with pytest.raises(ValueError):
        Command(111)


def test_echo_url():
    assert URL.ECHO == 0x46000000
    assert URL(0x30000000) is URL.ARCHIVE


def test_unknown_url_rejected():
    with pytest.raises(ValueError):
        URL(0x12345678)


def test_flags_are_distinct_single_bits():
    members = list(Flag)
    values = [int(Flag(int(flag))) for flag in members]
    assert [Flag(value) for value in values] == members
    assert len(set(values)) == len(values)
    assert all(value & (value - 1) == 0 for value in values)


def test_flags_combine():
    combined = Flag(3)
    assert combined == Flag.BY_NAME | Flag.BY_ID
    assert Flag.BY_NAME in combined
    assert Flag.BY_ID in combined
    assert Flag.FILTER not in combined


def test_single_flag_lookup():
    assert Flag(1) is Flag.BY_NAME
    assert Flag(2) is Flag.BY_ID
    assert Flag(4) is Flag.FILTER
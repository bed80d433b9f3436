"""Balance arithmetic applied when a leave request is approved."""

from datetime import datetime

import pytest

from db import USERS
from exceptions import NotFoundException
from utils.leave_utils import apply_leave_balance, calculate_leave_balance
from tests.conftest import make_user

DEFAULT_BALANCE = {"annual": 20, "medical": 4, "shortleave": 24, "leaves_taken": 0}


def days(count):
    return [datetime(2025, 3, day) for day in range(1, count + 1)]


@pytest.mark.parametrize("count", [1, 3, 4])
def test_full_day_sick_leave_draws_on_medical(count):
    balance = calculate_leave_balance(DEFAULT_BALANCE, "Full Day", "Sick", days(count))

    assert balance == {"annual": 20, "medical": 4 - count, "shortleave": 24, "leaves_taken": count}


def test_full_day_other_reason_draws_on_annual():
    balance = calculate_leave_balance(DEFAULT_BALANCE, "Full Day", "Vacation", days(3))

    assert balance == {"annual": 17, "medical": 4, "shortleave": 24, "leaves_taken": 3}


def test_short_leave_costs_half_a_day_each():
    balance = calculate_leave_balance(DEFAULT_BALANCE, "Short Leave", "Errand", days(3))

    assert balance["shortleave"] == 22.5
    assert balance["leaves_taken"] == 1.5
    assert balance["annual"] == 20
    assert balance["medical"] == 4


def test_half_day_leaves_balance_untouched():
    balance = calculate_leave_balance(DEFAULT_BALANCE, "Half Day", "Sick", days(2))

    assert balance == DEFAULT_BALANCE


def test_counters_are_floored_but_leaves_taken_is_not():
    balance = calculate_leave_balance(DEFAULT_BALANCE, "Full Day", "Sick", days(5))

    assert balance == {"annual": 20, "medical": 0, "shortleave": 24, "leaves_taken": 5}


def test_annual_floor_with_existing_leaves_taken():
    current = {"annual": 2, "medical": 4, "shortleave": 24, "leaves_taken": 7}

    balance = calculate_leave_balance(current, "Full Day", "Personal", days(4))

    assert balance["annual"] == 0
    assert balance["leaves_taken"] == 11


def test_missing_balance_uses_defaults():
    balance = calculate_leave_balance(None, "Short Leave", "", days(2))

    assert balance == {"annual": 20, "medical": 4, "shortleave": 23, "leaves_taken": 1}


async def test_apply_leave_balance_persists_new_counters(database):
    user = await make_user(database, name="Sam Sick")
    leave = {"leave_type": "Full Day", "reason": "Sick", "dates": days(5)}

    await apply_leave_balance(database, user["_id"], leave)

    stored = await database[USERS].find_one({"_id": user["_id"]})
    assert stored["leave_balance"] == {"annual": 20, "medical": 0, "shortleave": 24, "leaves_taken": 5}


async def test_apply_leave_balance_unknown_user(database):
    with pytest.raises(NotFoundException):
        await apply_leave_balance(database, "65f000000000000000000000", {"leave_type": "Full Day", "dates": []})

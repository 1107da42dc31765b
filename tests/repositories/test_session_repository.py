"""Unit tests for SessionRepository."""

from unittest.mock import AsyncMock, patch

import pytest

from golive.exceptions import ConditionFailedError
from golive.repositories.session_repository import OWNED_BY_CALLER, SessionRepository
from tests.fakes import NOW_ISO


def session_item(duration=0, end_time=None):
    item = {
        "sessionId": "s-1",
        "eventId": "evt-1",
        "clientViewerId": "c1",
        "playbackType": "live",
        "startTime": NOW_ISO,
        "duration": duration,
        "createdAt": NOW_ISO,
    }
    if end_time:
        item["endTime"] = end_time
    return item


@pytest.fixture
def repository() -> SessionRepository:
    return SessionRepository()


@pytest.mark.asyncio
async def test_add_duration_checks_owner(repository):
    with patch.object(repository, "update_item", new_callable=AsyncMock, return_value=session_item(30)) as update_item:
        session = await repository.add_duration("s-1", "evt-1", "c1", 30)

    assert session.duration == 30
    kwargs = update_item.await_args.kwargs
    assert update_item.await_args.args[1] == "ADD #duration :seconds"
    assert kwargs["condition_expression"] == OWNED_BY_CALLER
    assert kwargs["expression_values"][":clientViewerId"] == "c1"


@pytest.mark.asyncio
async def test_close_with_larger_duration(repository):
    with patch.object(
        repository, "update_item", new_callable=AsyncMock, return_value=session_item(90, NOW_ISO)
    ) as update_item:
        session = await repository.close("s-1", "evt-1", "c1", 90, NOW_ISO)

    assert session.duration == 90
    assert update_item.await_count == 1


@pytest.mark.asyncio
async def test_close_keeps_stored_duration_when_larger(repository):
    update_item = AsyncMock(side_effect=[ConditionFailedError("sessions"), session_item(120, NOW_ISO)])

    with patch.object(repository, "update_item", update_item):
        session = await repository.close("s-1", "evt-1", "c1", 60, NOW_ISO)

    assert session.duration == 120
    retry = update_item.await_args_list[1]
    assert retry.args[1] == "SET endTime = :endTime"
    assert ":duration" not in retry.kwargs["expression_values"]


@pytest.mark.asyncio
async def test_close_of_foreign_session_fails(repository):
    update_item = AsyncMock(side_effect=ConditionFailedError("sessions"))

    with patch.object(repository, "update_item", update_item):
        with pytest.raises(ConditionFailedError):
            await repository.close("s-1", "evt-1", "intruder", 60, NOW_ISO)

"""Tests for the dependent supplier → property filter cascade."""

from __future__ import annotations

import asyncio

import pytest

from calcana_sync.cascade import FilterCascade
from calcana_sync.models import ALL_PROPERTIES, ALL_SUPPLIERS, PropertyOption


def _cascade(notices, fetch):
    return FilterCascade(
        fetch_options=fetch,
        notifier=notices,
        title="Analyses",
        option_noun="properties",
        option_id=lambda p: p.property_id,
        parent_unset_values=("", ALL_SUPPLIERS),
        child_unset_values=("", ALL_PROPERTIES),
    )


OPTIONS = {
    "1": [PropertyOption(10, "Farm A"), PropertyOption(11, "Farm B")],
    "2": [PropertyOption(20, "Farm C")],
}


def _recording_fetch(calls: list[str]):
    async def fetch(parent: str) -> list:
        calls.append(parent)
        return OPTIONS.get(parent, [])

    return fetch


@pytest.mark.asyncio
async def test_parent_change_clears_child_and_reloads_options(notices) -> None:
    calls: list[str] = []
    cascade = _cascade(notices, _recording_fetch(calls))

    assert await cascade.set_parent("1")
    cascade.set_child("10")
    assert cascade.child_value == "10"

    assert await cascade.set_parent("2")

    assert cascade.child_value == ""
    assert [o.property_id for o in cascade.options] == [20]
    assert calls == ["1", "2"]


@pytest.mark.asyncio
@pytest.mark.parametrize("parent", ["", ALL_SUPPLIERS])
async def test_unset_parent_empties_options_without_fetching(notices, parent) -> None:
    calls: list[str] = []
    cascade = _cascade(notices, _recording_fetch(calls))
    await cascade.set_parent("1")
    cascade.set_child("11")

    assert not await cascade.set_parent(parent)

    assert cascade.options == []
    assert cascade.child_value == ""
    assert not cascade.child_enabled
    assert calls == ["1"]


@pytest.mark.asyncio
async def test_options_are_refetched_for_repeated_parent(notices) -> None:
    calls: list[str] = []
    cascade = _cascade(notices, _recording_fetch(calls))

    await cascade.set_parent("1")
    await cascade.set_parent(ALL_SUPPLIERS)
    await cascade.set_parent("1")

    assert calls == ["1", "1"]


@pytest.mark.asyncio
async def test_child_must_be_a_loaded_option_or_sentinel(notices) -> None:
    cascade = _cascade(notices, _recording_fetch([]))

    with pytest.raises(ValueError, match="without a parent"):
        cascade.set_child("10")

    await cascade.set_parent("1")
    with pytest.raises(ValueError, match="not one of the loaded properties"):
        cascade.set_child("20")

    cascade.set_child(ALL_PROPERTIES)
    assert cascade.child_value == ALL_PROPERTIES


@pytest.mark.asyncio
async def test_options_for_superseded_parent_are_dropped(notices) -> None:
    gates: dict[str, asyncio.Future] = {}

    async def fetch(parent: str) -> list:
        future = asyncio.get_running_loop().create_future()
        gates[parent] = future
        return await future

    cascade = _cascade(notices, fetch)
    slow = asyncio.create_task(cascade.set_parent("1"))
    fast = asyncio.create_task(cascade.set_parent("2"))
    await asyncio.sleep(0)

    gates["2"].set_result(OPTIONS["2"])
    assert await fast
    gates["1"].set_result(OPTIONS["1"])
    assert not await slow

    assert cascade.parent_value == "2"
    assert [o.property_id for o in cascade.options] == [20]
    assert not cascade.loading


@pytest.mark.asyncio
async def test_option_fetch_failure_notifies_and_leaves_list_empty(notices, http_error) -> None:
    async def fetch(parent: str) -> list:
        raise http_error(500)

    cascade = _cascade(notices, fetch)

    assert not await cascade.set_parent("1")

    assert cascade.options == []
    assert not cascade.loading
    [message] = notices.messages(severity="error")
    assert message.startswith("Could not load properties.")


@pytest.mark.asyncio
async def test_reset_clears_everything(notices) -> None:
    cascade = _cascade(notices, _recording_fetch([]))
    await cascade.set_parent("1")
    cascade.set_child("10")

    cascade.reset()

    assert (cascade.parent_value, cascade.child_value, cascade.options) == ("", "", [])

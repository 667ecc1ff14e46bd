from __future__ import annotations

import asyncio

from orderflow.domain.sync import KeyedSequencer


def test_disjoint_keys_run_concurrently() -> None:
    sequencer = KeyedSequencer()
    running: set[str] = set()
    overlap: list[set[str]] = []

    async def section(key: str) -> None:
        async with sequencer.sequenced([key]):
            running.add(key)
            await asyncio.sleep(0.01)
            overlap.append(set(running))
            running.discard(key)

    async def scenario() -> None:
        await asyncio.gather(section("A"), section("B"))

    asyncio.run(scenario())

    assert {"A", "B"} in overlap


def test_overlapping_key_sets_wait_for_every_predecessor() -> None:
    sequencer = KeyedSequencer()
    log: list[str] = []

    async def section(label: str, keys: list[str], delay: float) -> None:
        async with sequencer.sequenced(keys):
            log.append(f"{label}+")
            await asyncio.sleep(delay)
            log.append(f"{label}-")

    async def scenario() -> None:
        await asyncio.gather(
            section("ab", ["A", "B"], 0.02),
            section("b", ["B"], 0),
            section("c", ["C"], 0),
        )

    asyncio.run(scenario())

    assert log.index("ab-") < log.index("b+")
    assert log.index("c+") < log.index("ab-")


def test_failed_section_releases_its_keys() -> None:
    sequencer = KeyedSequencer()

    async def failing() -> None:
        async with sequencer.sequenced(["A"]):
            raise RuntimeError("boom")

    async def scenario() -> bool:
        try:
            await failing()
        except RuntimeError:
            pass
        async with sequencer.sequenced(["A"]):
            return sequencer.busy("A")

    assert asyncio.run(scenario()) is True
    assert not sequencer.busy("A")

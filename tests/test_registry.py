"""Tests for the one-at-a-time session registry."""

import asyncio

import pytest

from cognitive_insight.config.settings import SessionConfig
from cognitive_insight.session import prompts
from cognitive_insight.session.controller import SessionController
from cognitive_insight.session.registry import SessionBusyError, SessionRegistry

from fakes import (
    FakePermission,
    HangingSpeech,
    InMemoryResultRepository,
    KeywordEvaluator,
    ScriptedSpeech,
    StaticQuestionBank,
    correct_answers,
    make_questions,
    no_sleep,
)


def _factory(speech_factory):
    def build(session_id, observer):
        return SessionController(
            speech=speech_factory(),
            permission=FakePermission(),
            question_bank=StaticQuestionBank(make_questions(2)),
            evaluator=KeywordEvaluator(),
            repository=InMemoryResultRepository(),
            config=SessionConfig(post_prompt_pause_seconds=0),
            session_id=session_id,
            observer=observer,
            sleep=no_sleep,
        )

    return build


def _finished_session():
    return ScriptedSpeech(["이순신", "남성", "50대"] + correct_answers(2))


def test_start_publishes_initial_snapshot_and_finishes():
    async def scenario():
        registry = SessionRegistry(_factory(_finished_session))
        handle = registry.start()
        assert handle.latest.state == "Idle"
        await handle.task
        return registry, handle

    registry, handle = asyncio.run(scenario())

    assert handle.done
    assert handle.latest.state == "Completed"
    assert handle.latest.terminal
    assert registry.get(handle.session_id) is handle


def test_only_one_session_runs_at_a_time():
    async def scenario():
        registry = SessionRegistry(_factory(HangingSpeech))
        first = registry.start()
        with pytest.raises(SessionBusyError):
            registry.start()
        await asyncio.sleep(0)
        await registry.cancel(first.session_id)
        return first

    first = asyncio.run(scenario())

    assert first.latest.state == "Failed"
    assert first.latest.message == prompts.SESSION_CANCELLED


def test_subscribers_receive_every_snapshot():
    async def scenario():
        registry = SessionRegistry(_factory(_finished_session))
        handle = registry.start()
        queue = handle.subscribe()
        await handle.task
        snapshots = []
        while not queue.empty():
            snapshots.append(queue.get_nowait())
        return snapshots

    snapshots = asyncio.run(scenario())

    assert snapshots[0].state == "Idle"
    assert snapshots[-1].terminal


def test_finished_sessions_are_pruned():
    async def scenario():
        registry = SessionRegistry(_factory(_finished_session), max_finished=1)
        ids = []
        for _ in range(3):
            handle = registry.start()
            ids.append(handle.session_id)
            await handle.task
        return registry, ids

    registry, ids = asyncio.run(scenario())

    assert registry.get(ids[0]) is None
    assert registry.get(ids[2]) is not None


def test_shutdown_cancels_running_session():
    async def scenario():
        registry = SessionRegistry(_factory(HangingSpeech))
        handle = registry.start()
        await asyncio.sleep(0)
        await registry.shutdown()
        return handle

    handle = asyncio.run(scenario())

    assert handle.task.cancelled()

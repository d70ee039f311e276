"""Tests for ffsession.tui.wrap -- background wrapping with cancellation."""

from __future__ import annotations

import asyncio

import pytest

from ffsession.tui.utils import wrap_text
from ffsession.tui.wrap import (
    BackgroundWrapper,
    CancellationToken,
    WrapCancelled,
    WrapResult,
    run_wrap_job,
)

TEXT = "the quick brown fox jumps over the lazy dog\n" * 40


class TestRunWrapJob:
    def test_wraps_like_wrap_text(self) -> None:
        assert run_wrap_job(TEXT, 12, CancellationToken()) == wrap_text(TEXT, 12)

    def test_cancelled_token_raises(self) -> None:
        token = CancellationToken()
        token.cancel()
        assert token.cancelled
        with pytest.raises(WrapCancelled):
            run_wrap_job(TEXT, 12, token)


class TestBackgroundWrapper:
    def test_request_without_loop_does_nothing(self) -> None:
        wrapper = BackgroundWrapper()
        assert wrapper.request(TEXT, 10) is False
        assert not wrapper.pending
        assert wrapper.lines_for(TEXT, 10) is None

    @pytest.mark.asyncio
    async def test_result_is_delivered(self) -> None:
        results: list[WrapResult] = []
        wrapper = BackgroundWrapper(on_result=results.append)
        assert wrapper.request(TEXT, 10) is True
        assert wrapper.pending
        result = await wrapper.wait()
        assert result is not None
        assert result.lines == wrap_text(TEXT, 10)
        assert results == [result]
        assert not wrapper.pending
        assert wrapper.lines_for(TEXT, 10) == result.lines
        assert wrapper.lines_for(TEXT, 11) is None

    @pytest.mark.asyncio
    async def test_duplicate_requests_are_ignored(self) -> None:
        wrapper = BackgroundWrapper()
        assert wrapper.request(TEXT, 10) is True
        assert wrapper.request(TEXT, 10) is False
        await wrapper.wait()
        assert wrapper.request(TEXT, 10) is False

    @pytest.mark.asyncio
    async def test_newer_width_supersedes_older(self) -> None:
        results: list[WrapResult] = []
        wrapper = BackgroundWrapper(on_result=results.append)
        wrapper.request(TEXT, 10)
        wrapper.request(TEXT, 20)
        await wrapper.wait()
        # Give a late result for the superseded job a chance to arrive.
        await asyncio.sleep(0.05)
        assert [r.width for r in results] == [20]
        assert wrapper.result is not None
        assert wrapper.result.width == 20

    @pytest.mark.asyncio
    async def test_cancel_drops_result(self) -> None:
        results: list[WrapResult] = []
        wrapper = BackgroundWrapper(on_result=results.append)
        wrapper.request(TEXT, 10)
        wrapper.cancel()
        assert not wrapper.pending
        assert await wrapper.wait() is None
        await asyncio.sleep(0.05)
        assert results == []

    @pytest.mark.asyncio
    async def test_clear_forgets_result(self) -> None:
        wrapper = BackgroundWrapper()
        wrapper.request(TEXT, 10)
        await wrapper.wait()
        wrapper.clear()
        assert wrapper.result is None
        assert wrapper.lines_for(TEXT, 10) is None

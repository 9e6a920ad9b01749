"""
Tests for TextUploader.
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from filtext.backends.memory import create_simulated_uploader
from filtext.core import TextUploader
from filtext.errors import DatasetResolutionFailed, InsufficientFunds, SessionStateError
from filtext.models import BalanceSource, SessionState

from tests.fakes import ACCOUNT


class TestTextUploader:
    """Tests for TextUploader."""

    def test_requires_account(self, ledger, transport):
        with pytest.raises(ValueError):
            TextUploader(ledger, transport, account="")

    def test_initial_status(self, uploader):
        assert uploader.progress_percent == 0
        assert uploader.status_message == ""
        assert uploader.uploaded_info is None
        assert uploader.in_flight is False

    @pytest.mark.asyncio
    async def test_upload_records_uploaded_info(self, uploader):
        outcome = await uploader.upload("hello")

        info = uploader.uploaded_info
        assert info.piece_cid == outcome.piece_cid
        assert info.text_preview == "hello"
        assert info.text_size == 5
        assert uploader.progress_percent == 100
        assert uploader.status_message == "Text successfully stored on Filecoin!"

    @pytest.mark.asyncio
    async def test_long_text_preview_is_truncated(self, uploader):
        await uploader.upload("x" * 150)

        preview = uploader.uploaded_info.text_preview
        assert preview == "x" * 100 + "..."

    @pytest.mark.asyncio
    async def test_same_text_same_piece_cid(self, uploader):
        first = await uploader.upload("hello")
        second = await uploader.upload("hello")

        assert first.piece_cid == second.piece_cid

    @pytest.mark.asyncio
    async def test_second_upload_reuses_container(self, uploader, transport):
        await uploader.upload("first")
        await uploader.upload("second")

        assert len(transport.created) == 1
        assert SessionState.AUTHORIZING not in uploader.session.state_history
        assert uploader.session.dataset.is_new is False

    @pytest.mark.asyncio
    async def test_failed_upload_status(self):
        uploader = create_simulated_uploader(ACCOUNT, funds=0)

        with pytest.raises(InsufficientFunds):
            await uploader.upload("hello")

        assert uploader.status_message.startswith("Upload failed:")
        assert uploader.progress_percent == 10
        assert uploader.uploaded_info is None
        assert uploader.in_flight is False

    @pytest.mark.asyncio
    async def test_listener_attached_to_each_session(self, uploader):
        seen = []
        uploader.add_progress_listener(lambda state: seen.append(state.percent))

        await uploader.upload("one")
        first_run = len(seen)
        await uploader.upload("two")

        assert first_run > 0
        assert len(seen) > first_run
        assert seen[first_run] == 0

    @pytest.mark.asyncio
    async def test_no_second_upload_while_in_flight(self, uploader, transport):
        release = asyncio.Event()
        list_containers = transport.list_containers

        async def slow_list(account):
            await release.wait()
            return await list_containers(account)

        transport.list_containers = slow_list
        running = asyncio.create_task(uploader.upload("hello"))
        await asyncio.sleep(0)

        assert uploader.in_flight is True
        with pytest.raises(SessionStateError):
            await uploader.upload("again")
        with pytest.raises(SessionStateError):
            uploader.reset()

        release.set()
        await running
        assert uploader.in_flight is False

    @pytest.mark.asyncio
    async def test_reset_clears_session_state(self, uploader):
        await uploader.upload("hello")

        uploader.reset()

        assert uploader.uploaded_info is None
        assert uploader.progress_percent == 0
        assert uploader.status_message == ""

    @pytest.mark.asyncio
    async def test_uploaders_do_not_share_state(self):
        a = create_simulated_uploader(ACCOUNT)
        b = create_simulated_uploader(ACCOUNT)

        await a.upload("hello")

        assert a.progress_percent == 100
        assert b.progress_percent == 0
        assert b.uploaded_info is None

    @pytest.mark.asyncio
    async def test_balance(self, uploader):
        balance = await uploader.balance()

        assert balance.amount == Decimal(10)
        assert balance.source == BalanceSource.LEDGER

    @pytest.mark.asyncio
    async def test_datasets_list_stored_pieces(self, uploader):
        first = await uploader.upload("first")
        second = await uploader.upload("second")

        found = await uploader.datasets()

        assert len(found) == 1
        assert [p.piece_cid for p in found[0].pieces] == [first.piece_cid, second.piece_cid]
        assert [p.size for p in found[0].pieces] == [5, 6]

    @pytest.mark.asyncio
    async def test_datasets_empty_account(self, uploader):
        assert await uploader.datasets() == []

    @pytest.mark.asyncio
    async def test_datasets_without_piece_listing(self, ledger):
        """A transport that cannot list pieces still lists its containers."""
        transport = AsyncMock(spec=["list_containers", "create_container", "upload"])
        transport.list_containers.return_value = [{"dataset_id": 3, "provider_id": 1}]
        uploader = TextUploader(ledger, transport, ACCOUNT)

        found = await uploader.datasets()

        assert found[0].dataset_id == 3
        assert found[0].pieces == []

    @pytest.mark.asyncio
    async def test_datasets_listing_failure(self, uploader, transport):
        transport.list_containers = AsyncMock(side_effect=ConnectionError("timeout"))

        with pytest.raises(DatasetResolutionFailed):
            await uploader.datasets()

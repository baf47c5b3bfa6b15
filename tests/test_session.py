import asyncio
import threading

import pytest

from analysis.credentials import InMemoryCredentialProvider
from analysis.session import AnalysisSession, is_remote_link, reject_remote_link
from utils.exceptions import EmptyResultError, FormatError, SessionBusyError

from conftest import FakeClient

SALES = {
    "Sales": {
        "A1": "key",
        "B5": "=VLOOKUP(A1,B:C,2,0)",
        "B6": "=VLOOKUP(A1,B:C,2,0)",
    }
}


@pytest.fixture
def credentials() -> InMemoryCredentialProvider:
    return InMemoryCredentialProvider("user-key")


class TestAnalyzeFile:
    @pytest.mark.asyncio
    async def test_success_stores_result(self, credentials, make_xlsx, valid_result) -> None:
        client = FakeClient(valid_result)
        session = AnalysisSession(credentials, client=client)

        result = await session.analyze_file(
            "sales.xlsx", make_xlsx(SALES), user_context="Monthly sales report"
        )

        assert result == valid_result
        assert session.result == valid_result
        assert not session.busy
        assert client.credentials == ["user-key"]
        prompt = client.requests[0].prompt
        assert "Sheet: Sales" in prompt
        assert "- Formula: =VLOOKUP(A1,B:C,2,0) (Location: Sales!B5)" in prompt
        assert "Sales!B6" not in prompt
        assert "Additional context from the user: Monthly sales report" in prompt

    @pytest.mark.asyncio
    async def test_doubled_suffix_name_is_accepted(self, credentials, make_xlsx, valid_result) -> None:
        session = AnalysisSession(credentials, client=FakeClient(valid_result))

        result = await session.analyze_file("data.csv.xlsx.xlsx", make_xlsx(SALES))

        assert result == valid_result

    @pytest.mark.asyncio
    async def test_second_call_while_busy_is_rejected(
        self, credentials, make_xlsx, valid_result
    ) -> None:
        release = threading.Event()
        client = FakeClient(valid_result, release=release)
        session = AnalysisSession(credentials, client=client)
        data = make_xlsx(SALES)

        first = asyncio.create_task(session.analyze_file("sales.xlsx", data))
        await asyncio.sleep(0)
        assert session.busy

        with pytest.raises(SessionBusyError):
            await session.analyze_file("other.xlsx", data)

        release.set()
        assert await first == valid_result
        assert len(client.requests) == 1
        assert not session.busy

    @pytest.mark.asyncio
    async def test_credential_is_read_once_at_start(
        self, credentials, make_xlsx, valid_result
    ) -> None:
        release = threading.Event()
        client = FakeClient(valid_result, release=release)
        session = AnalysisSession(credentials, client=client)

        task = asyncio.create_task(session.analyze_file("sales.xlsx", make_xlsx(SALES)))
        await asyncio.sleep(0)
        credentials.set("changed-mid-flight")
        release.set()
        await task

        assert client.credentials == ["user-key"]

    @pytest.mark.asyncio
    async def test_no_formulas(self, credentials, make_xlsx, valid_result) -> None:
        client = FakeClient(valid_result)
        session = AnalysisSession(credentials, client=client)

        with pytest.raises(EmptyResultError):
            await session.analyze_file("plain.xlsx", make_xlsx({"S": {"A1": 1, "B1": "x"}}))

        assert client.requests == []
        assert session.result is None
        assert not session.busy

    @pytest.mark.asyncio
    async def test_rejects_non_workbook_name(self, credentials, valid_result) -> None:
        session = AnalysisSession(credentials, client=FakeClient(valid_result))

        with pytest.raises(FormatError):
            await session.analyze_file("data.csv", b"a,b\n1,2\n")

        assert not session.busy

    @pytest.mark.asyncio
    async def test_unreadable_bytes(self, credentials, valid_result) -> None:
        session = AnalysisSession(credentials, client=FakeClient(valid_result))

        with pytest.raises(FormatError):
            await session.analyze_file("broken.xlsx", b"PK\x03\x04not a zip")

        assert not session.busy

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_result(self, credentials, make_xlsx, valid_result) -> None:
        session = AnalysisSession(credentials, client=FakeClient(valid_result))
        await session.analyze_file("sales.xlsx", make_xlsx(SALES))

        with pytest.raises(EmptyResultError):
            await session.analyze_file("plain.xlsx", make_xlsx({"S": {"A1": 1}}))

        assert session.result == valid_result


@pytest.mark.asyncio
async def test_reset_clears_result(credentials, make_xlsx, valid_result) -> None:
    session = AnalysisSession(credentials, client=FakeClient(valid_result))
    await session.analyze_file("sales.xlsx", make_xlsx(SALES))

    session.reset()

    assert session.result is None


class TestRemoteLinks:
    @pytest.mark.parametrize(
        "source,expected",
        [
            ("https://docs.google.com/spreadsheets/d/abc/edit", True),
            ("HTTP://example.com/a.xlsx", True),
            ("report.xlsx", False),
        ],
    )
    def test_is_remote_link(self, source, expected) -> None:
        assert is_remote_link(source) is expected

    def test_reject_remote_link(self) -> None:
        with pytest.raises(FormatError) as exc_info:
            reject_remote_link("https://docs.google.com/spreadsheets/d/abc/edit")

        assert ".xlsx" in exc_info.value.user_message

"""
Tests for the Backlog API client.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import Mock

import pytest
import requests
from conftest import RecordingSleep

from backlog_gfm_migrator.backlog_client import BacklogClient
from backlog_gfm_migrator.exceptions import BacklogApiError, ProjectFormatError
from backlog_gfm_migrator.throttle import Throttle


def _response(payload: Any = None, status: int = 200) -> Mock:
    response = Mock()
    response.status_code = status
    response.ok = status < 400
    response.reason = "Error"
    response.text = ""
    response.json.return_value = payload
    return response


def _issue_json(issue_id: int, description: str | None = "") -> dict[str, Any]:
    return {"id": issue_id, "issueKey": f"PROJ-{issue_id}", "summary": f"Issue {issue_id}", "description": description}


def _make_client(session: Mock, *, page_size: int = 100, sleep: RecordingSleep | None = None) -> BacklogClient:
    throttle = Throttle(min_interval=1.0, sleep=sleep or RecordingSleep())
    return BacklogClient("space.backlog.com", "secret", session=session, page_size=page_size, throttle=throttle)


@pytest.mark.unit
class TestRequests:
    """Test request construction and error mapping."""

    def test_api_key_and_base_url(self) -> None:
        session = Mock()
        session.request.return_value = _response(_issue_json(7, "#Head"))
        client = _make_client(session)

        issue = client.get_issue(7)

        session.request.assert_called_once_with(
            "GET",
            "https://space.backlog.com/api/v2/issues/7",
            params={"apiKey": "secret"},
            data=None,
            timeout=30.0,
        )
        assert issue.kind == "issue"
        assert issue.display_key == "PROJ-7"
        assert issue.title == "Issue 7"
        assert issue.body == "#Head"

    def test_null_description_becomes_empty_string(self) -> None:
        session = Mock()
        session.request.return_value = _response(_issue_json(7, None))

        assert _make_client(session).get_issue(7).body == ""

    def test_http_error_uses_backlog_message(self) -> None:
        session = Mock()
        session.request.return_value = _response({"errors": [{"message": "No issue.", "code": 6}]}, status=404)

        with pytest.raises(BacklogApiError, match=r"HTTP 404: No issue\.") as exc_info:
            _ = _make_client(session).get_issue(7)
        assert exc_info.value.status_code == 404

    def test_transport_error_is_wrapped(self) -> None:
        session = Mock()
        session.request.side_effect = requests.ConnectionError("connection refused")

        with pytest.raises(BacklogApiError, match="connection refused"):
            _ = _make_client(session).get_issue(7)

    def test_invalid_json_is_wrapped(self) -> None:
        session = Mock()
        response = _response()
        response.json.side_effect = ValueError("not json")
        session.request.return_value = response

        with pytest.raises(BacklogApiError, match="invalid JSON"):
            _ = _make_client(session).get_wiki(1)

    def test_malformed_payload_is_wrapped(self) -> None:
        session = Mock()
        session.request.return_value = _response({"id": 7})

        with pytest.raises(BacklogApiError, match="Unexpected response"):
            _ = _make_client(session).get_issue(7)

    def test_invalid_page_size(self) -> None:
        with pytest.raises(ValueError, match="Page size"):
            _ = BacklogClient("space.backlog.com", "secret", session=Mock(), page_size=101)


@pytest.mark.unit
class TestGetProject:
    def test_markdown_project(self) -> None:
        session = Mock()
        session.request.return_value = _response(
            {"id": 42, "projectKey": "PROJ", "name": "Project", "textFormattingRule": "markdown"}
        )

        project = _make_client(session).get_project("PROJ")

        assert project.id == 42
        assert project.markdown_enabled is True

    def test_non_markdown_project_rejected(self) -> None:
        session = Mock()
        session.request.return_value = _response(
            {"id": 42, "projectKey": "PROJ", "name": "Project", "textFormattingRule": "backlog"}
        )

        with pytest.raises(ProjectFormatError, match=r"does not use markdown formatting \(uses: backlog\)"):
            _ = _make_client(session).get_project("PROJ")

    def test_missing_project(self) -> None:
        session = Mock()
        session.request.return_value = _response({"errors": [{"message": "No project."}]}, status=404)

        with pytest.raises(BacklogApiError, match="No project"):
            _ = _make_client(session).get_project("NOPE")


@pytest.mark.unit
class TestIssuePagination:
    """Test that issue listing pages through the whole collection."""

    def test_concatenates_pages_until_short_page(self) -> None:
        session = Mock()
        session.request.side_effect = [
            _response([_issue_json(1), _issue_json(2)]),
            _response([_issue_json(3), _issue_json(4)]),
            _response([_issue_json(5)]),
        ]
        sleep = RecordingSleep()
        client = _make_client(session, page_size=2, sleep=sleep)

        issues = client.list_issues(42)

        assert [issue.id for issue in issues] == [1, 2, 3, 4, 5]
        offsets = [call.kwargs["params"]["offset"] for call in session.request.call_args_list]
        assert offsets == [0, 2, 4]
        first_params = session.request.call_args_list[0].kwargs["params"]
        assert first_params["projectId[]"] == [42]
        assert first_params["count"] == 2
        # Pause between pages, not after the last one
        assert sleep.delays == [1.0, 1.0]

    def test_stops_on_empty_page(self) -> None:
        session = Mock()
        session.request.side_effect = [
            _response([_issue_json(1), _issue_json(2)]),
            _response([]),
        ]
        client = _make_client(session, page_size=2)

        assert [issue.id for issue in client.list_issues(42)] == [1, 2]
        assert session.request.call_count == 2

    def test_empty_project(self) -> None:
        session = Mock()
        session.request.return_value = _response([])

        assert _make_client(session).list_issues(42) == []
        assert session.request.call_count == 1

    def test_iterator_is_lazy_and_restartable(self) -> None:
        session = Mock()
        session.request.return_value = _response([_issue_json(1)])
        client = _make_client(session)

        iterator = client.iter_issues(42)
        assert session.request.call_count == 0

        assert [issue.id for issue in iterator] == [1]
        assert [issue.id for issue in client.iter_issues(42)] == [1]
        assert session.request.call_count == 2


@pytest.mark.unit
class TestUpdatesAndWikis:
    def test_update_issue(self) -> None:
        session = Mock()
        session.request.return_value = _response(_issue_json(7, "# Head"))

        _make_client(session).update_issue(7, "# Head")

        session.request.assert_called_once_with(
            "PATCH",
            "https://space.backlog.com/api/v2/issues/7",
            params={"apiKey": "secret"},
            data={"description": "# Head"},
            timeout=30.0,
        )

    def test_update_rejected(self) -> None:
        session = Mock()
        session.request.return_value = _response({"errors": [{"message": "Not allowed"}]}, status=403)

        with pytest.raises(BacklogApiError, match="Not allowed"):
            _make_client(session).update_issue(7, "# Head")

    def test_list_wikis(self) -> None:
        session = Mock()
        session.request.return_value = _response([{"id": 1, "name": "Home"}, {"id": 2, "name": "Setup"}])

        wikis = _make_client(session).list_wikis(42)

        assert [(w.id, w.display_key, w.body) for w in wikis] == [(1, "Home", ""), (2, "Setup", "")]
        assert session.request.call_args.kwargs["params"]["projectIdOrKey"] == 42

    def test_get_and_update_wiki(self) -> None:
        session = Mock()
        session.request.return_value = _response({"id": 1, "name": "Home", "content": "#Welcome"})
        client = _make_client(session)

        wiki = client.get_wiki(1)
        client.update_wiki(1, "# Welcome")

        assert wiki.kind == "wiki"
        assert wiki.body == "#Welcome"
        method, url = session.request.call_args.args
        assert (method, url) == ("PATCH", "https://space.backlog.com/api/v2/wikis/1")
        assert session.request.call_args.kwargs["data"] == {"content": "# Welcome"}

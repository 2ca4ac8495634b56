"""
Tests for the Flask host: auth, board snapshot, column visibility, moves.
"""
import pytest

from boardsync.board import Board
from boardsync.errors import RemoteValidationError, TransportError
from boardsync.server import BoardRunner, create_app

SECRET = "s3cret"
AUTH = {"X-API-Key": SECRET}


@pytest.fixture
def runner(service, config):
    board_runner = BoardRunner(Board(config, service))
    board_runner.start()
    yield board_runner
    board_runner.stop()


@pytest.fixture
def client(runner):
    app = create_app(runner, api_secret=SECRET)
    app.config["TESTING"] = True
    return app.test_client()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Auth
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_write_without_key(client):
    r = client.post("/api/redraw")
    assert r.status_code == 401


def test_write_with_wrong_key(client):
    r = client.post("/api/redraw", headers={"X-API-Key": "nope"})
    assert r.status_code == 403


def test_write_without_secret_configured(runner):
    app = create_app(runner, api_secret="")
    r = app.test_client().post("/api/redraw", headers=AUTH)
    assert r.status_code == 503


def test_reads_are_open(client):
    assert client.get("/api/columns").status_code == 200
    assert client.get("/health").get_json()["status"] == "ok"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Board state
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_board_snapshot(client):
    data = client.get("/api/board").get_json()

    assert data["stats"]["item_total"] == 2
    assert data["stats"]["state_totals"]["Done"] == 1
    assert [c["title"] for c in data["columns"]] == ["(none)", "Not Started", "In Progress", "Done"]
    done = [c for c in data["board"]["columns"] if c["name"] == "Done"][0]
    assert done["cards"] == [{"id": "2", "content": "Ship it"}]


def test_board_before_initialize(service, config):
    board_runner = BoardRunner(Board(config, service))
    board_runner.thread.start()
    try:
        client = create_app(board_runner, api_secret=SECRET).test_client()
        assert client.get("/api/board").status_code == 503
        assert client.get("/health").get_json()["status"] == "starting"
        r = client.post("/api/cards/1/move", json={"state": "Done"}, headers=AUTH)
        assert r.status_code == 503
    finally:
        board_runner.stop()


def test_set_visible_columns(client):
    r = client.put("/api/columns", json={"visible": ["Done", "In Progress"]}, headers=AUTH)
    data = r.get_json()

    assert data["applied"] is True
    assert [c["title"] for c in data["columns"] if c["is_visible"]] == ["In Progress", "Done"]
    events = client.get("/api/events").get_json()["events"]
    assert events[0]["event_type"] == "columns-changed"
    assert events[0]["columns"] == ["In Progress", "Done"]


def test_set_single_column_not_applied(client):
    r = client.put("/api/columns", json={"visible": ["Done"]}, headers=AUTH)
    assert r.get_json()["applied"] is False


def test_set_visible_columns_bad_body(client):
    r = client.put("/api/columns", json={"visible": 3}, headers=AUTH)
    assert r.status_code == 400


def test_set_height(client, runner):
    r = client.put("/api/height", json={"height": "250px"}, headers=AUTH)
    assert r.status_code == 200
    assert runner.board.view.height == "250px"
    assert client.put("/api/height", json={"height": 250}, headers=AUTH).status_code == 400


def test_refresh(client, service):
    service.lists["Tasks"].append({"id": 3, "Title": "New", "Status": "Done"})
    data = client.post("/api/refresh", headers=AUTH).get_json()

    assert data == {"added": ["3"], "removed": [], "moved": [], "dropped": []}
    events = client.get("/api/events?limit=1").get_json()["events"]
    assert len(events) == 1
    assert events[0]["items"] == ["3"]


def test_refresh_transport_failure(client, service):
    service.fail_fetch = TransportError("Communications Error! down", None, "error")
    r = client.post("/api/refresh", headers=AUTH)
    assert r.status_code == 502
    assert r.get_json()["status"] == "error"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Moves
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def test_move_card_by_title(client, service):
    r = client.post("/api/cards/2/move", json={"state": "In Progress"}, headers=AUTH)
    data = r.get_json()

    assert r.status_code == 200
    assert data["phase"] == "committed"
    assert data["from_state"] == "Done"
    assert data["item"]["Status"] == "In Progress"
    assert service.update_calls == [("Tasks", "2", [["Status", "In Progress"]])]


def test_move_to_blank_column(client, service):
    r = client.post("/api/cards/2/move", json={"state": "(none)"}, headers=AUTH)
    assert r.get_json()["to_state"] == ""
    assert service.update_calls[0][2] == [["Status", ""]]


def test_move_invalid_state(client):
    r = client.post("/api/cards/2/move", json={"state": "Archived"}, headers=AUTH)
    assert r.status_code == 400


def test_move_missing_state(client):
    r = client.post("/api/cards/2/move", json={}, headers=AUTH)
    assert r.status_code == 400


def test_move_unknown_card(client):
    r = client.post("/api/cards/99/move", json={"state": "Done"}, headers=AUTH)
    assert r.status_code == 404


def test_move_rejected_by_list(client, service):
    service.fail_update = RemoteValidationError("Owner is required")
    r = client.post("/api/cards/1/move", json={"state": "Done"}, headers=AUTH)
    assert r.status_code == 409
    assert r.get_json() == {"error": "Owner is required", "status": "rejected"}


def test_move_transport_failure(client, service):
    service.fail_update = TransportError("Communications Error! timeout", None, "error")
    r = client.post("/api/cards/1/move", json={"state": "Done"}, headers=AUTH)
    assert r.status_code == 502


def test_hook_key_error_is_not_card_not_found(service, config):
    def hook(event, element, intent):
        raise KeyError("Owner")

    board_runner = BoardRunner(Board(config, service, on_pre_update=hook))
    board_runner.start()
    try:
        client = create_app(board_runner, api_secret=SECRET).test_client()
        r = client.post("/api/cards/2/move", json={"state": "In Progress"}, headers=AUTH)
        assert r.status_code == 500
        assert service.update_calls == []
    finally:
        board_runner.stop()

"""Tests for the WebSocket protocol and server."""
import asyncio
import json
import pytest
from unittest.mock import AsyncMock, MagicMock, patch
from fastapi.testclient import TestClient

from chipsync.main import GameServer, app
from chipsync.game.betting import RejectReason
from chipsync.game.session import GameSession
from chipsync.protocol.messages import (
    parse_client_message,
    AddPlayerMessage,
    BetMessage,
    LoanMessage,
    NextPhaseMessage,
    RemovePlayerMessage,
    state_message,
)


def make_websocket() -> MagicMock:
    """Create a fake WebSocket that records sends."""
    websocket = MagicMock()
    websocket.send_json = AsyncMock()
    return websocket


def frame(**data) -> str:
    return json.dumps(data)


class TestMessageParsing:
    """Test client message parsing."""

    def test_parse_add_player(self):
        """Test parsing addPlayer with camelCase fields."""
        msg = parse_client_message(
            {"type": "addPlayer", "name": "alice", "initialChips": 500, "clientId": "u1"}
        )

        assert isinstance(msg, AddPlayerMessage)
        assert msg.name == "alice"
        assert msg.initial_chips == 500
        assert msg.client_id == "u1"

    def test_parse_add_player_uuid_alias(self):
        """Test the durable id may arrive as uuid."""
        msg = parse_client_message(
            {"type": "addPlayer", "name": "alice", "initialChips": 500, "uuid": "u1"}
        )

        assert msg.client_id == "u1"

    @pytest.mark.parametrize("msg_type", ["bet", "actionBet"])
    def test_parse_bet(self, msg_type):
        """Test both bet message names parse to a bet."""
        msg = parse_client_message({"type": msg_type, "playerId": "c1", "amount": 25})

        assert isinstance(msg, BetMessage)
        assert msg.player_id == "c1"
        assert msg.amount == 25

    def test_parse_loan(self):
        """Test parsing a loan request."""
        msg = parse_client_message({"type": "actionLoan", "playerId": "c1", "amount": 300})

        assert isinstance(msg, LoanMessage)
        assert msg.amount == 300

    def test_parse_next_phase(self):
        """Test nextPhase needs no payload."""
        assert isinstance(parse_client_message({"type": "nextPhase"}), NextPhaseMessage)

    def test_parse_remove_player(self):
        """Test removePlayer with either identity field."""
        msg = parse_client_message({"type": "removePlayer", "uuid": "u1"})

        assert isinstance(msg, RemovePlayerMessage)
        assert msg.player_id is None
        assert msg.client_id == "u1"

    def test_unknown_type(self):
        """Test unknown message types are rejected."""
        with pytest.raises(ValueError, match="Unknown message type"):
            parse_client_message({"type": "cheat"})

    @pytest.mark.parametrize("data", [
        {"type": "actionBet", "playerId": "c1"},
        {"type": "actionBet", "playerId": "c1", "amount": "lots"},
        {"type": "addPlayer", "name": "alice", "initialChips": -1, "clientId": "u1"},
        {"type": "addPlayer", "name": "alice", "initialChips": 10},
        {"type": "confirmWin"},
    ])
    def test_invalid_payload(self, data):
        """Test missing or bad fields raise ValueError."""
        with pytest.raises(ValueError):
            parse_client_message(data)

    @pytest.mark.parametrize("msg_type", [[], {}, ["addPlayer"], None, 7])
    def test_non_string_type(self, msg_type):
        """Test a type field that is not a string is rejected as unknown."""
        with pytest.raises(ValueError, match="Unknown message type"):
            parse_client_message({"type": msg_type})

    def test_not_an_object(self):
        """Test non-object JSON is rejected."""
        with pytest.raises(ValueError):
            parse_client_message(["addPlayer"])

    def test_state_message_wire_format(self):
        """Test snapshots are sent with camelCase keys."""
        session = GameSession()
        session.join("c1", "u1", "alice", 100)

        msg = state_message(session.get_state())

        assert msg["type"] == "updateState"
        state = msg["state"]
        assert state["roundIndex"] == 0
        assert state["roundName"] == "preflop"
        assert state["readyPlayers"] == []
        player = state["players"][0]
        assert player["id"] == "c1"
        assert player["clientId"] == "u1"
        assert player["originalChips"] == 100
        assert player["callNeed"] == 0
        assert player["inDebt"] is False


class TestMessageHandler:
    """Test routing frames into the session."""

    @pytest.fixture
    def server(self):
        return GameServer()

    def test_add_player(self, server):
        """Test addPlayer joins on the sender's connection."""
        result = server.handler.handle_message(
            "c1", frame(type="addPlayer", name="alice", initialChips=100, clientId="u1")
        )

        assert result.applied
        assert server.session.get_player("c1").name == "alice"

    def test_invalid_json(self, server):
        """Test garbage frames are dropped."""
        result = server.handler.handle_message("c1", "{not json")

        assert result.reason == RejectReason.MALFORMED

    @pytest.mark.parametrize("raw", [
        '{"type": []}',
        '{"type": {}}',
        "[" * 100000 + "]" * 100000,
    ])
    def test_unusable_frames_dropped(self, server, raw):
        """Test odd type fields and deeply nested JSON become malformed rejections."""
        result = server.handler.handle_message("c1", raw)

        assert result.reason == RejectReason.MALFORMED

    def test_second_add_player_on_connection(self, server):
        """Test one connection cannot add a second player."""
        server.handler.handle_message(
            "c1", frame(type="addPlayer", name="alice", initialChips=100, clientId="u1")
        )

        result = server.handler.handle_message(
            "c1", frame(type="addPlayer", name="bob", initialChips=100, clientId="u2")
        )

        assert result.reason == RejectReason.ALREADY_JOINED
        assert [p.name for p in server.session.players] == ["alice"]

    def test_bet_for_other_player(self, server):
        """Test the claimed player id must match the sender."""
        server.handler.handle_message(
            "c1", frame(type="addPlayer", name="alice", initialChips=100, clientId="u1")
        )

        result = server.handler.handle_message("c2", frame(type="actionBet", playerId="c1", amount=10))

        assert result.reason == RejectReason.UNAUTHORIZED
        assert server.session.get_player("c1").chips == 100

    def test_delete_all_players(self, server):
        """Test deleteAllPlayers clears the session."""
        server.handler.handle_message(
            "c1", frame(type="addPlayer", name="alice", initialChips=100, clientId="u1")
        )

        assert server.handler.handle_message("c2", frame(type="deleteAllPlayers")).applied
        assert server.session.players == []


class TestGameServer:
    """Test serialized dispatch and broadcasting."""

    @pytest.fixture
    def server(self):
        server = GameServer()
        server.connections = {"c1": make_websocket(), "c2": make_websocket()}
        return server

    @pytest.mark.asyncio
    async def test_applied_action_broadcasts(self, server):
        """Test every connection receives the new state."""
        ws1, ws2 = server.connections["c1"], server.connections["c2"]
        await server.dispatch("c1", frame(type="addPlayer", name="alice", initialChips=100, clientId="u1"))

        for ws in (ws1, ws2):
            ws.send_json.assert_awaited_once()
            sent = ws.send_json.await_args.args[0]
            assert sent["type"] == "updateState"
            assert sent["state"]["players"][0]["name"] == "alice"

    @pytest.mark.asyncio
    async def test_rejected_action_sends_nothing(self, server):
        """Test rejections produce no broadcast."""
        ws1, ws2 = server.connections["c1"], server.connections["c2"]
        await server.dispatch("c1", frame(type="addPlayer", name="alice", initialChips=100, clientId="u1"))
        ws1.send_json.reset_mock()
        ws2.send_json.reset_mock()

        result = await server.dispatch("c2", frame(type="actionBet", playerId="c1", amount=10))

        assert not result.applied
        ws1.send_json.assert_not_awaited()
        ws2.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reported_rejection_goes_to_sender_only(self, server):
        """Test the optional rejection notice reaches only the sender."""
        ws1, ws2 = server.connections["c1"], server.connections["c2"]
        with patch("chipsync.main.config") as mock_config:
            mock_config.report_rejections = True

            await server.dispatch("c2", frame(type="actionFold", playerId="c1"))

        ws1.send_json.assert_not_awaited()
        ws2.send_json.assert_awaited_once_with(
            {"type": "actionRejected", "message": "Action rejected", "code": "unauthorized"}
        )

    @pytest.mark.asyncio
    async def test_vote_broadcasts_without_transition(self, server):
        """Test a ready vote is broadcast even when the phase does not move."""
        ws1, ws2 = server.connections["c1"], server.connections["c2"]
        await server.dispatch("c1", frame(type="addPlayer", name="alice", initialChips=100, clientId="u1"))
        await server.dispatch("c2", frame(type="addPlayer", name="bob", initialChips=100, clientId="u2"))
        ws1.send_json.reset_mock()

        await server.dispatch("c1", frame(type="nextPhase"))

        sent = ws1.send_json.await_args.args[0]
        assert sent["state"]["phase"] == "bet"
        assert sent["state"]["readyPlayers"] == ["c1"]

    @pytest.mark.asyncio
    async def test_failed_send_drops_connection(self, server):
        """Test a dead connection is forgotten without affecting others."""
        ws1, ws2 = server.connections["c1"], server.connections["c2"]
        ws1.send_json.side_effect = RuntimeError("closed")

        result = await server.dispatch("c2", frame(type="resetGame"))

        assert result.applied
        assert "c1" not in server.connections
        ws2.send_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_greet(self, server):
        """Test a new connection gets its id then the state, and nobody else hears."""
        ws1, ws2 = server.connections["c1"], server.connections["c2"]
        websocket = make_websocket()

        connection_id = await server.greet(websocket)

        assert server.connections[connection_id] is websocket
        calls = [c.args[0] for c in websocket.send_json.await_args_list]
        assert calls[0] == {"type": "connected", "connectionId": connection_id}
        assert calls[1]["type"] == "updateState"
        ws1.send_json.assert_not_awaited()
        ws2.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_greet_waits_for_in_flight_broadcast(self, server):
        """Test a socket joining mid-broadcast hears connected before any state."""
        websocket = make_websocket()

        async with server._lock:
            greeting = asyncio.create_task(server.greet(websocket))
            await asyncio.sleep(0)
            await server.broadcast_state()
            assert websocket not in server.connections.values()

        await greeting

        calls = [c.args[0] for c in websocket.send_json.await_args_list]
        assert calls[0]["type"] == "connected"
        assert len(calls) == 2


class TestEndpoints:
    """Test the HTTP and WebSocket endpoints."""

    def test_health(self):
        """Test health check."""
        with TestClient(app) as client:
            response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_state(self):
        """Test the read-only state endpoint."""
        with TestClient(app) as client:
            state = client.get("/api/state").json()

        assert state["phase"] == "bet"
        assert state["players"] == []

    def test_websocket_game(self):
        """Test joining, a rejected foreign bet, and a real bet over WebSocket."""
        with TestClient(app) as client:
            with client.websocket_connect("/ws") as ws1, client.websocket_connect("/ws") as ws2:
                id1 = ws1.receive_json()["connectionId"]
                assert ws1.receive_json()["type"] == "updateState"
                id2 = ws2.receive_json()["connectionId"]
                ws2.receive_json()

                ws1.send_json({"type": "addPlayer", "name": "alice", "initialChips": 100, "clientId": "u1"})
                ws1.receive_json()
                ws2.receive_json()

                # Bob tries to bet with Alice's chips; nothing is broadcast
                ws2.send_json({"type": "actionBet", "playerId": id1, "amount": 50})
                ws1.send_json({"type": "actionBet", "playerId": id1, "amount": 30})

                state = ws2.receive_json()["state"]
                assert state["pot"] == 30
                assert state["players"][0]["chips"] == 70
                assert state["players"][0]["id"] == id1
                assert id2 != id1

    def test_reconnect_keeps_chips(self):
        """Test a client rejoining on a new socket keeps its player."""
        with TestClient(app) as client:
            with client.websocket_connect("/ws") as ws:
                ws.receive_json()
                ws.receive_json()
                ws.send_json({"type": "addPlayer", "name": "alice", "initialChips": 100, "clientId": "u1"})
                ws.receive_json()

            with client.websocket_connect("/ws") as ws:
                new_id = ws.receive_json()["connectionId"]
                assert ws.receive_json()["state"]["players"][0]["chips"] == 100

                ws.send_json({"type": "addPlayer", "name": "alice", "initialChips": 999, "clientId": "u1"})
                players = ws.receive_json()["state"]["players"]

        assert len(players) == 1
        assert players[0]["id"] == new_id
        assert players[0]["chips"] == 100

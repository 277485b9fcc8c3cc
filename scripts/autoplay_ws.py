#!/usr/bin/env python3
"""
Auto-play hands against a running chip server over WebSocket.

Usage:
    python scripts/autoplay_ws.py [--hands N]

Start the server first (`chipsync-server`). Each simulated player joins,
bets a random amount each betting phase, votes to advance, and the player
with the most chips left confirms the win at the river.
"""
import argparse
import asyncio
import json
import random
import uuid

import httpx
import websockets

API_URL = "http://localhost:3000"
WS_URL = "ws://localhost:3000/ws"


class Player:
    def __init__(self, name: str, chips: int = 1000):
        self.name = name
        self.chips = chips
        self.client_id = uuid.uuid4().hex
        self.connection_id = None
        self.ws = None
        self.state = None

    async def connect(self):
        """Connect and join the game."""
        self.ws = await websockets.connect(WS_URL)
        hello = await self.recv()
        self.connection_id = hello["connectionId"]
        self.state = (await self.recv())["state"]

        await self.send({
            "type": "addPlayer",
            "name": self.name,
            "initialChips": self.chips,
            "clientId": self.client_id,
        })
        print(f"  ✓ {self.name} joined as {self.connection_id[:8]}")

    async def send(self, message: dict):
        """Send a message."""
        await self.ws.send(json.dumps(message))

    async def recv(self, timeout: float = 5.0):
        """Receive a message with timeout."""
        try:
            msg = await asyncio.wait_for(self.ws.recv(), timeout)
            return json.loads(msg)
        except asyncio.TimeoutError:
            return None

    async def drain(self, timeout: float = 0.2):
        """Apply every pending state update."""
        while True:
            msg = await self.recv(timeout)
            if not msg:
                break
            if msg.get("type") == "updateState":
                self.state = msg["state"]

    def me(self) -> dict:
        for p in self.state["players"]:
            if p["id"] == self.connection_id:
                return p
        return {}

    async def act(self):
        """Bet, borrow, or fold during a betting phase."""
        me = self.me()
        if me.get("folded"):
            return
        if me["chips"] == 0 and not me["inDebt"]:
            await self.send({"type": "actionLoan", "playerId": self.connection_id, "amount": 200})
            print(f"  {self.name}: LOAN 200")
            return

        roll = random.random()
        if roll < 0.05:
            await self.send({"type": "actionFold", "playerId": self.connection_id})
            print(f"  {self.name}: FOLD")
        elif roll < 0.1 and me["chips"] > 0:
            await self.send({"type": "actionAllIn", "playerId": self.connection_id})
            print(f"  {self.name}: ALL IN")
        else:
            amount = max(me["callNeed"], min(me["chips"], random.choice([10, 20, 50])))
            if 0 < amount <= me["chips"]:
                await self.send({"type": "actionBet", "playerId": self.connection_id, "amount": amount})
                print(f"  {self.name}: BET {amount}")


async def drain_all(players: list[Player]):
    for p in players:
        await p.drain()


async def main():
    parser = argparse.ArgumentParser(description="Auto-play chip tracker hands")
    parser.add_argument("--hands", type=int, default=3)
    args = parser.parse_args()

    print("=" * 50)
    print("Chip Tracker Auto-Play (WebSocket)")
    print("=" * 50)

    async with httpx.AsyncClient() as client:
        res = await client.get(f"{API_URL}/health")
        if res.status_code != 200:
            print(f"  ✗ Server not healthy: {res.text}")
            return

    players = [Player("alice"), Player("bob"), Player("carol")]

    print("\n--- Joining ---")
    for p in players:
        await p.connect()
    await drain_all(players)

    for hand in range(1, args.hands + 1):
        print(f"\n--- Hand {hand} ---")
        while True:
            state = players[0].state
            if state["phase"] == "bet":
                for p in players:
                    await p.act()
                await drain_all(players)

            print(f"  [{players[0].state['roundName']} / {players[0].state['phase']}] pot={players[0].state['pot']}")
            if players[0].state["roundIndex"] == 3 and players[0].state["phase"] == "draw":
                break
            if all(p.me().get("folded") for p in players):
                break

            for p in players:
                if not p.me().get("folded"):
                    await p.send({"type": "nextPhase"})
            await drain_all(players)

        winner = random.choice([p for p in players if not p.me().get("folded")] or players)
        await winner.send({"type": "confirmWin", "playerId": winner.connection_id})
        await drain_all(players)
        print(f"  🏆 {winner.name} wins")

    print("\n" + "=" * 50)
    for p in players[0].state["players"]:
        debt = f" (owes {p['loan']})" if p["inDebt"] else ""
        print(f"  {p['name']}: {p['chips']}{debt}")

    for p in players:
        await p.ws.close()


if __name__ == "__main__":
    asyncio.run(main())

"""Tier 2 fixtures: local fake drand relay, Cosmos node and signer servers.

The adapters talk real HTTP to these. Each fake keeps its state in a
plain dict so tests can change behaviour between requests.
"""

from __future__ import annotations

import base64
import hashlib
import json

import pytest
from aiohttp import web

from tests.factories import FASTNET_HASH, beacon_json

DRAND_PORT = 9301
NODE_PORT = 9302
SIGNER_PORT = 9303
BAD_DRAND_PORT = 9304

# Nothing listens here; connections are refused immediately
DEAD_URL = "http://127.0.0.1:9"


async def _serve(app: web.Application, port: int):
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    return runner


# ── drand relay ───────────────────────────────────────────────────


def drand_app(state: dict) -> web.Application:
    async def handle_info(request):
        if request.match_info["chain_hash"] != state["chain_hash"]:
            return web.Response(status=404)
        return web.json_response(state["info"])

    async def handle_round(request):
        state["requests"].append(request.match_info["round"])
        if request.match_info["chain_hash"] != state["chain_hash"]:
            return web.Response(status=404)
        which = request.match_info["round"]
        if which == "latest":
            number = max(state["published"], default=None)
            if number is None:
                return web.Response(status=404)
        else:
            number = int(which)
            if number not in state["published"]:
                return web.Response(status=state["missing_status"])
        return web.json_response(beacon_json(state["served_as"].get(number, number)))

    app = web.Application()
    app.router.add_get("/{chain_hash}/info", handle_info)
    app.router.add_get("/{chain_hash}/public/{round}", handle_round)
    return app


@pytest.fixture
async def fake_drand():
    """Returns (base_url, state). Add round numbers to state["published"]."""
    state = {
        "chain_hash": FASTNET_HASH,
        "info": {
            "public_key": "ab" * 48,
            "period": 3,
            "genesis_time": 1677685200,
            "hash": FASTNET_HASH,
            "groupHash": "cd" * 32,
        },
        "published": set(),
        "missing_status": 404,
        "served_as": {},
        "requests": [],
    }
    runner = await _serve(drand_app(state), DRAND_PORT)
    yield f"http://127.0.0.1:{DRAND_PORT}", state
    await runner.cleanup()


@pytest.fixture
async def bad_drand():
    """A relay that answers every round with a malformed body.

    Returns (base_url, state); state["requests"] counts round requests.
    """
    state = {"requests": 0, "body": {"round": 100, "randomness": "zz", "signature": "not-hex"}}

    async def handle_round(request):
        state["requests"] += 1
        return web.json_response(state["body"])

    app = web.Application()
    app.router.add_get("/{chain_hash}/public/{round}", handle_round)
    runner = await _serve(app, BAD_DRAND_PORT)
    yield f"http://127.0.0.1:{BAD_DRAND_PORT}", state
    await runner.cleanup()


# ── Cosmos node: Tendermint RPC, REST and faucet on one port ─────


def node_app(state: dict) -> web.Application:
    async def handle_jsonrpc(request):
        body = await request.json()
        if body.get("method") != "broadcast_tx_sync":
            return web.json_response(
                {"jsonrpc": "2.0", "id": body.get("id"), "error": {"code": -32601, "data": "unknown method"}}
            )
        tx = base64.b64decode(body["params"]["tx"])
        digest = hashlib.sha256(tx).hexdigest().upper()
        state["broadcasts"].append(tx)
        result = {"code": state["check_code"], "log": state["check_log"], "codespace": "sdk", "hash": digest}
        if state["check_code"] == 0:
            state["mempool"][digest] = state["pending_polls"]
        return web.json_response({"jsonrpc": "2.0", "id": body.get("id"), "result": result})

    async def handle_tx(request):
        digest = request.query["hash"].removeprefix("0x").upper()
        state["lookups"] += 1
        remaining = state["mempool"].get(digest)
        if remaining is None or remaining > 0:
            if remaining:
                state["mempool"][digest] = remaining - 1
            return web.json_response(
                {"jsonrpc": "2.0", "id": -1, "error": {"code": -32603, "data": f"tx ({digest}) not found"}},
                status=500,
            )
        return web.json_response({
            "jsonrpc": "2.0",
            "id": -1,
            "result": {
                "hash": digest,
                "height": str(state["height"]),
                "tx_result": {
                    "code": state["deliver_code"],
                    "log": state["deliver_log"],
                    "gas_used": "123456",
                    "gas_wanted": "700000",
                },
            },
        })

    async def handle_status(request):
        return web.json_response(
            {"jsonrpc": "2.0", "id": -1, "result": {"node_info": {"network": state["chain_id"]}}}
        )

    async def handle_block(request):
        height = int(request.query["height"])
        return web.json_response({
            "jsonrpc": "2.0",
            "id": -1,
            "result": {"block": {"header": {"height": str(height), "time": state["block_time"]}}},
        })

    async def handle_account(request):
        account = state["accounts"].get(request.match_info["address"])
        if account is None:
            return web.json_response({"code": 5, "message": "account not found"}, status=404)
        return web.json_response({"account": account})

    async def handle_balance(request):
        denom = request.query["denom"]
        amount = state["balances"].get(request.match_info["address"], "0")
        return web.json_response({"balance": {"denom": denom, "amount": amount}})

    async def handle_credit(request):
        state["credits"].append(await request.json())
        return web.Response(text="ok")

    app = web.Application()
    app.router.add_post("/", handle_jsonrpc)
    app.router.add_get("/tx", handle_tx)
    app.router.add_get("/status", handle_status)
    app.router.add_get("/block", handle_block)
    app.router.add_get("/cosmos/auth/v1beta1/accounts/{address}", handle_account)
    app.router.add_get("/cosmos/bank/v1beta1/balances/{address}/by_denom", handle_balance)
    app.router.add_post("/credit", handle_credit)
    return app


@pytest.fixture
async def fake_node():
    """Returns (base_url, state)."""
    state = {
        "chain_id": "nois-testnet-005",
        "accounts": {},
        "balances": {},
        "block_time": "2023-03-01T15:40:03.5Z",
        "height": 1234,
        "check_code": 0,
        "check_log": "",
        "deliver_code": 0,
        "deliver_log": "[]",
        "pending_polls": 0,
        "mempool": {},
        "broadcasts": [],
        "lookups": 0,
        "credits": [],
    }
    runner = await _serve(node_app(state), NODE_PORT)
    yield f"http://127.0.0.1:{NODE_PORT}", state
    await runner.cleanup()


# ── Signer ────────────────────────────────────────────────────────


def signer_app(state: dict) -> web.Application:
    async def handle_sign(request):
        payload = await request.json()
        state["sign_requests"].append(payload)
        if state["fail"]:
            return web.Response(status=500, text="key locked")
        tx = json.dumps(
            {"memo": payload["memo"], "sequence": payload["sign_data"]["sequence"]},
            sort_keys=True,
        ).encode()
        return web.json_response({"tx_bytes": base64.b64encode(tx).decode()})

    async def handle_import(request):
        payload = await request.json()
        state["imports"].append(payload)
        return web.json_response({"address": state["address"]})

    async def handle_generate(request):
        payload = await request.json()
        state["generated"].append(payload)
        return web.json_response({"address": state["address"], "mnemonic": "fresh words"})

    app = web.Application()
    app.router.add_post("/v1/sign", handle_sign)
    app.router.add_post("/v1/keys/import", handle_import)
    app.router.add_post("/v1/keys/generate", handle_generate)
    return app


def make_signer_state(address: str = "nois1signerbot") -> dict:
    return {
        "address": address,
        "fail": False,
        "sign_requests": [],
        "imports": [],
        "generated": [],
    }


@pytest.fixture
async def fake_signer():
    """Returns (base_url, state)."""
    state = make_signer_state()
    runner = await _serve(signer_app(state), SIGNER_PORT)
    yield f"http://127.0.0.1:{SIGNER_PORT}", state
    await runner.cleanup()

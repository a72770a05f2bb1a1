"""Contract message encoding, gas price parsing and fee calculation."""

from __future__ import annotations

import math
import re
from decimal import Decimal, InvalidOperation
from typing import Any

from beacon_relay.models.beacon import BeaconRound
from beacon_relay.models.records import Coin, Fee, GasPrice

EXECUTE_CONTRACT_TYPE_URL = "/cosmwasm.wasm.v1.MsgExecuteContract"

_GAS_PRICE_RE = re.compile(r"^([0-9.]+)([a-zA-Z][a-zA-Z0-9/:._-]{2,127})$")


def execute_contract_msg(sender: str, contract: str, msg: dict[str, Any]) -> dict[str, Any]:
    """Wrap a contract call in a MsgExecuteContract (amino JSON shape)."""
    return {
        "type_url": EXECUTE_CONTRACT_TYPE_URL,
        "value": {
            "sender": sender,
            "contract": contract,
            "msg": msg,
            "funds": [],
        },
    }


def add_round_msg(sender: str, contract: str, beacon: BeaconRound) -> dict[str, Any]:
    """add_round call for one beacon round.

    previous_signature is only sent for chained beacons.
    """
    add_round: dict[str, Any] = {
        "round": beacon.round,
        "signature": beacon.signature.hex(),
    }
    if beacon.previous_signature is not None:
        add_round["previous_signature"] = beacon.previous_signature.hex()
    return execute_contract_msg(sender, contract, {"add_round": add_round})


def register_bot_msg(sender: str, contract: str, moniker: str) -> dict[str, Any]:
    return execute_contract_msg(sender, contract, {"register_bot": {"moniker": moniker}})


def add_round_memo(round_number: int) -> str:
    return f"Insert randomness round: {round_number}"


def parse_gas_price(value: str) -> GasPrice:
    """Parse a gas price such as "0.025unois"."""
    match = _GAS_PRICE_RE.match(value.strip())
    if not match:
        raise ValueError(f"invalid gas price {value!r}, expected e.g. '0.025unois'")
    try:
        amount = Decimal(match.group(1))
    except InvalidOperation:
        raise ValueError(f"invalid gas price amount in {value!r}") from None
    return GasPrice(amount=amount, denom=match.group(2))


def calculate_fee(gas_limit: int, gas_price: GasPrice) -> Fee:
    """Fee for gas_limit at gas_price, rounded up to a whole unit."""
    amount = math.ceil(gas_price.amount * gas_limit)
    return Fee(amount=[Coin(denom=gas_price.denom, amount=str(amount))], gas=str(gas_limit))


def printable_coin(coin: Coin) -> str:
    """Human readable coin: "1234567unois" -> "1.234567 NOIS"."""
    if coin.denom.startswith("u"):
        ticker = coin.denom[1:].upper()
        whole = Decimal(coin.amount or "0").scaleb(-6)
        return f"{whole.normalize():f} {ticker}"
    return f"{coin.amount}{coin.denom}"

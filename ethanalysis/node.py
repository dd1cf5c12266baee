"""Client for a beacon chain node's HTTP API."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx

from ethanalysis.env import get_env_var_unsafe
from ethanalysis.slot import Slot, slot_from_string

StateRoot = str
BlockRoot = str
BlockHash = str


class BeaconNodeError(Exception):
    """Raised when the beacon node answers in a way we cannot use."""


def _gwei(value: Any) -> int:
    return int(value)


@dataclass(frozen=True)
class BeaconBlock:
    """A beacon block, reduced to the parts we store."""

    deposits: list[int]
    parent_root: BlockRoot
    slot: Slot
    state_root: StateRoot
    block_hash: BlockHash | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> BeaconBlock:
        """Decode a block message as the node sends it."""
        body = data["body"]
        payload = body.get("execution_payload")
        return cls(
            deposits=[_gwei(envelope["data"]["amount"]) for envelope in body["deposits"]],
            parent_root=data["parent_root"],
            slot=slot_from_string(data["slot"]),
            state_root=data["state_root"],
            block_hash=payload["block_hash"] if payload is not None else None,
        )


@dataclass(frozen=True)
class BeaconHeader:
    """The message part of a beacon block header."""

    slot: Slot
    parent_root: BlockRoot
    state_root: StateRoot


@dataclass(frozen=True)
class BeaconHeaderSignedEnvelope:
    """A header together with the root (hash) of the block it describes."""

    root: BlockRoot
    header: BeaconHeader

    @property
    def slot(self) -> Slot:
        return self.header.slot

    @property
    def parent_root(self) -> BlockRoot:
        return self.header.parent_root

    @property
    def state_root(self) -> StateRoot:
        return self.header.state_root

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> BeaconHeaderSignedEnvelope:
        """Decode the signed header envelope as the node sends it."""
        message = data["header"]["message"]
        return cls(
            root=data["root"],
            header=BeaconHeader(
                slot=slot_from_string(message["slot"]),
                parent_root=message["parent_root"],
                state_root=message["state_root"],
            ),
        )


@dataclass(frozen=True)
class ValidatorBalance:
    """A validator's balance in Gwei."""

    balance: int


@dataclass(frozen=True)
class Validator:
    """A validator's effective balance in Gwei."""

    effective_balance: int


@dataclass(frozen=True)
class FinalityCheckpoint:
    """The last finalized checkpoint."""

    epoch: int
    root: str


@dataclass(frozen=True)
class _BlockId:
    kind: str
    value: str = ""

    @property
    def path_segment(self) -> str:
        return self.value if self.kind in ("block_root", "slot") else self.kind

    def __str__(self) -> str:
        if self.kind == "block_root":
            return f"BlockId(BlockRoot) {self.value}"
        if self.kind == "slot":
            return f"BlockId(slot) {self.value}"
        return f"BlockId({self.kind.capitalize()})"

    @classmethod
    def block_root(cls, block_root: str) -> _BlockId:
        return cls("block_root", block_root)

    @classmethod
    def slot(cls, slot: Slot) -> _BlockId:
        return cls("slot", str(slot))


_FINALIZED = _BlockId("finalized")
_HEAD = _BlockId("head")


class BeaconNode:
    """Fetches blocks, headers, state roots and validator data from a beacon node."""

    def __init__(self, beacon_url: str | None = None, client: httpx.Client | None = None) -> None:
        self.beacon_url = beacon_url if beacon_url is not None else get_env_var_unsafe("BEACON_URL")
        self._client = client if client is not None else httpx.Client()

    def __enter__(self) -> BeaconNode:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Release the underlying HTTP connections."""
        self._client.close()

    def _get(self, path: str) -> httpx.Response:
        return self._client.get(f"{self.beacon_url}{path}")

    def _get_block(self, block_id: _BlockId) -> BeaconBlock | None:
        res = self._get(f"/eth/v2/beacon/blocks/{block_id.path_segment}")
        if res.status_code == 404:
            return None
        if res.status_code == 200:
            return BeaconBlock.from_json(res.json()["data"]["message"])
        raise BeaconNodeError(
            f"failed to fetch block by block_id. block_id = {block_id} "
            f"status = {res.status_code} url = {res.url}"
        )

    def get_block_by_slot(self, slot: Slot) -> BeaconBlock | None:
        return self._get_block(_BlockId.slot(slot))

    def get_block_by_block_root(self, block_root: str) -> BeaconBlock | None:
        return self._get_block(_BlockId.block_root(block_root))

    def get_last_finalized_block(self) -> BeaconBlock:
        block = self._get_block(_FINALIZED)
        if block is None:
            raise BeaconNodeError("expect a finalized block to always be available")
        return block

    def get_last_block(self) -> BeaconBlock:
        block = self._get_block(_HEAD)
        if block is None:
            raise BeaconNodeError("expect head block to always be available")
        return block

    def get_state_root_by_slot(self, slot: Slot) -> StateRoot | None:
        res = self._get(f"/eth/v1/beacon/states/{slot}/root")
        if res.status_code == 404:
            return None
        if res.status_code == 200:
            return res.json()["data"]["root"]
        raise BeaconNodeError(
            f"failed to fetch state_root by slot. slot = {slot} "
            f"status = {res.status_code} url = {res.url}"
        )

    def get_validator_balances(self, state_root: str) -> list[ValidatorBalance] | None:
        res = self._get(f"/eth/v1/beacon/states/{state_root}/validator_balances")
        if res.status_code == 404:
            return None
        if res.status_code == 200:
            return [ValidatorBalance(_gwei(item["balance"])) for item in res.json()["data"]]
        raise BeaconNodeError(
            f"failed to fetch validator balances by state_root. state_root = {state_root} "
            f"status = {res.status_code} url = {res.url}"
        )

    def _get_header(self, block_id: _BlockId) -> BeaconHeaderSignedEnvelope | None:
        res = self._get(f"/eth/v1/beacon/headers/{block_id.path_segment}")
        if res.status_code == 404:
            return None
        if res.status_code == 200:
            return BeaconHeaderSignedEnvelope.from_json(res.json()["data"])
        raise BeaconNodeError(
            f"failed to fetch header by block id. status = {res.status_code} url = {res.url}"
        )

    def get_header_by_slot(self, slot: Slot) -> BeaconHeaderSignedEnvelope | None:
        slot_timestamp = slot.date_time()
        if slot_timestamp > datetime.now(timezone.utc):
            raise BeaconNodeError(
                f"tried to fetch slot: {slot}, with expected timestamp: {slot_timestamp}, "
                "but can't fetch slots from the future"
            )
        return self._get_header(_BlockId.slot(slot))

    def get_header_by_block_root(self, block_root: str) -> BeaconHeaderSignedEnvelope | None:
        return self._get_header(_BlockId.block_root(block_root))

    def get_header_by_state_root(
        self, state_root: str, slot: Slot
    ) -> BeaconHeaderSignedEnvelope | None:
        """Get the header at slot, but only if its state_root is the one given."""
        header = self._get_header(_BlockId.slot(slot))
        if header is None or header.state_root != state_root:
            return None
        return header

    def get_last_header(self) -> BeaconHeaderSignedEnvelope:
        header = self._get_header(_HEAD)
        if header is None:
            raise BeaconNodeError("expect beacon chain head to always point to a block")
        return header

    def get_last_finality_checkpoint(self) -> FinalityCheckpoint:
        res = self._get("/eth/v1/beacon/states/head/finality_checkpoints")
        res.raise_for_status()
        finalized = res.json()["data"]["finalized"]
        return FinalityCheckpoint(epoch=int(finalized["epoch"]), root=finalized["root"])

    def get_validators_by_state(self, state_root: str) -> list[Validator]:
        res = self._get(f"/eth/v1/beacon/states/{state_root}/validators")
        res.raise_for_status()
        return [
            Validator(_gwei(envelope["validator"]["effective_balance"]))
            for envelope in res.json()["data"]
        ]
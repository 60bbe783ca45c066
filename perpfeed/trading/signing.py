"""
Signing boundary

Order placement needs a wallet that can sign EIP-712 typed data. Key
material never enters this package: callers pass any object that
satisfies `Signer`. For Hyperliquid L1 actions the signer receives the
action and nonce in `value` and is responsible for deriving the
phantom-agent connection id before signing.
"""
import time
from typing import Any, Dict, List, Protocol, runtime_checkable

HYPERLIQUID_L1_DOMAIN: Dict[str, Any] = {
    "name": "Exchange",
    "version": "1",
    "chainId": 1337,
    "verifyingContract": "0x0000000000000000000000000000000000000000",
}

HYPERLIQUID_AGENT_TYPES: Dict[str, List[Dict[str, str]]] = {
    "Agent": [
        {"name": "source", "type": "string"},
        {"name": "connectionId", "type": "bytes32"},
    ],
}

MAINNET_SOURCE = "a"


@runtime_checkable
class Signer(Protocol):
    address: str

    async def sign_typed_data(
        self,
        domain: Dict[str, Any],
        types: Dict[str, List[Dict[str, str]]],
        value: Dict[str, Any],
    ) -> str:
        ...


def float_to_wire(x: float) -> str:
    """Fixed point with 6 decimals, as an integer string"""
    return str(int(round(x * 1e6)))


def nonce_ms() -> int:
    return int(time.time() * 1000)


def split_signature(signature: str) -> Dict[str, Any]:
    """0x-prefixed 65-byte hex signature -> {r, s, v}"""
    sig = signature[2:] if signature.startswith("0x") else signature
    if len(sig) != 130:
        raise ValueError(f"expected 65-byte signature, got {len(sig) // 2} bytes")
    v = int(sig[128:130], 16)
    if v < 27:
        v += 27
    return {"r": "0x" + sig[0:64], "s": "0x" + sig[64:128], "v": v}

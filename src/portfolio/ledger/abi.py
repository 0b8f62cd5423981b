"""ABI of the portfolio attestation contract (the subset this package uses)."""

from __future__ import annotations

from typing import Any


_RECORD_COMPONENTS: list[dict[str, Any]] = [
    {"name": "owner", "type": "address"},
    {"name": "organizer", "type": "address"},
    {"name": "startAt", "type": "uint64"},
    {"name": "endAt", "type": "uint64"},
    {"name": "contentHash", "type": "bytes32"},
    {"name": "contentURI", "type": "string"},
    {"name": "resultURI", "type": "string"},
    {"name": "reasonURI", "type": "string"},
    {"name": "status", "type": "uint8"},
]

PORTFOLIO_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "createEventRequest",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "organizer", "type": "address"},
            {"name": "startAt", "type": "uint64"},
            {"name": "endAt", "type": "uint64"},
            {"name": "contentHash", "type": "bytes32"},
            {"name": "contentURI", "type": "string"},
        ],
        "outputs": [{"name": "id", "type": "uint256"}],
    },
    {
        "type": "function",
        "name": "confirmEvent",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "id", "type": "uint256"},
            {"name": "resultURI", "type": "string"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "rejectEvent",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "id", "type": "uint256"},
            {"name": "reasonURI", "type": "string"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "getEvent",
        "stateMutability": "view",
        "inputs": [{"name": "id", "type": "uint256"}],
        "outputs": [
            {"name": "", "type": "tuple", "components": _RECORD_COMPONENTS},
        ],
    },
    {
        "type": "event",
        "name": "EventRequested",
        "anonymous": False,
        "inputs": [
            {"name": "id", "type": "uint256", "indexed": True},
            {"name": "owner", "type": "address", "indexed": True},
            {"name": "organizer", "type": "address", "indexed": True},
        ],
    },
]

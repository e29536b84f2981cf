from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class PendingPayment:
    address: str  # Payout address of the miner, the ledger key is derived from it
    amount: int  # Amount owed, in the smallest currency unit
    timestamp: int  # Unix seconds of the last credit that produced this record

    def to_json_dict(self) -> Dict[str, Any]:
        # Field names and casing are shared with every other consumer of the store
        return {"Address": self.address, "Amount": self.amount, "Timestamp": self.timestamp}

    @classmethod
    def from_json_dict(cls, json_dict: Dict[str, Any]) -> "PendingPayment":
        address = json_dict["Address"]
        amount = json_dict["Amount"]
        timestamp = json_dict["Timestamp"]
        if not isinstance(address, str):
            raise TypeError(f"Address must be a string, got {type(address).__name__}")
        for name, value in (("Amount", amount), ("Timestamp", timestamp)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{name} must be an integer, got {type(value).__name__}")
        return cls(address, amount, timestamp)


@dataclass(frozen=True)
class PoolChartPoint:
    timestamp: int  # Unix seconds the sample was taken
    time_format: str  # Label shown on the chart axis
    pool_hash: int  # Pool hashrate at that time

    def to_json_dict(self) -> Dict[str, Any]:
        return {"x": self.timestamp, "timeFormat": self.time_format, "y": self.pool_hash}


@dataclass(frozen=True)
class MinerChartPoint:
    timestamp: int  # Unix seconds the sample was taken
    time_format: str  # Label shown on the chart axis
    miner_hash: int  # Short window hashrate
    miner_large_hash: int  # Long window hashrate
    worker_online: str  # Number of workers online, as displayed

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "x": self.timestamp,
            "timeFormat": self.time_format,
            "minerHash": self.miner_hash,
            "minerLargeHash": self.miner_large_hash,
            "workerOnline": self.worker_online,
        }

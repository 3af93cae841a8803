from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from imagepipe.domain.operations import (
    PARAMETER_MODELS,
    OperationParams,
    OperationType,
    dump_parameters,
)


@dataclass(frozen=True)
class TransformationEntity:
    id: str  # unique within the parent image
    type: OperationType
    parameters: OperationParams
    result_path: str  # derived file on disk, deleted together with this record
    result_url: str
    created_at: datetime
    # dimensions of the derived file, never of the parent image
    width: int | None = None
    height: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "parameters": dump_parameters(self.parameters),
            "result_path": self.result_path,
            "result_url": self.result_url,
            "created_at": self.created_at.isoformat(),
            "width": self.width,
            "height": self.height,
        }

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> TransformationEntity:
        op_type = OperationType(row["type"])
        created_at = row["created_at"]
        if isinstance(created_at, str):
            created_at = datetime.fromisoformat(created_at)
        return cls(
            id=row["id"],
            type=op_type,
            parameters=PARAMETER_MODELS[op_type].model_validate(row.get("parameters") or {}),
            result_path=row["result_path"],
            result_url=row.get("result_url", ""),
            created_at=created_at,
            width=row.get("width"),
            height=row.get("height"),
        )

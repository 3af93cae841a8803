from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from imagepipe.domain.errors import (
    FileSystemError,
    ImagePipeError,
    InvalidImageError,
    ProcessingError,
    ValidationError,
)
from imagepipe.domain.operations import OperationParams, OperationType
from imagepipe.domain.services.file_cleanup import remove_file, remove_files
from imagepipe.domain.services.metadata_inspector import MetadataInspector
from imagepipe.domain.services.operation_dispatcher import OperationDispatcher

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionResult:
    type: OperationType
    parameters: OperationParams
    output_path: str
    width: int
    height: int


@dataclass
class PipelineExecutor:
    """Runs one operation, or an ordered chain of operations, against an image file.

    In a chain, each stage reads the previous stage's output. The original
    file is only ever read. A failing chain removes every file it produced
    before the error reaches the caller; a successful chain keeps them all.
    """

    dispatcher: OperationDispatcher
    inspector: MetadataInspector
    max_batch_size: int = 10

    def execute(self, image_path: str, op_type: Any, options: dict[str, Any] | None) -> ExecutionResult:
        params = self.dispatcher.validate(op_type, options)
        return self._run_stage(image_path, self.dispatcher.parse_type(op_type), params)

    def execute_sequence(
        self, image_path: str, stages: list[tuple[Any, dict[str, Any] | None]]
    ) -> list[ExecutionResult]:
        if not stages:
            raise ValidationError("Transformations must be a non-empty list")
        if len(stages) > self.max_batch_size:
            raise ValidationError(
                f"Too many transformations: {len(stages)}. Maximum is {self.max_batch_size}"
            )

        # Validate every stage up front so bad input never touches the disk.
        plan: list[tuple[OperationType, OperationParams]] = []
        for index, (op_type, options) in enumerate(stages, start=1):
            try:
                params = self.dispatcher.validate(op_type, options, standalone=False)
            except ValidationError as exc:
                raise ValidationError(f"Transformation {index}: {exc.detail}") from exc
            plan.append((self.dispatcher.parse_type(op_type), params))

        produced: list[ExecutionResult] = []
        current = image_path
        try:
            for op_type, params in plan:
                result = self._run_stage(current, op_type, params)
                produced.append(result)
                current = result.output_path
        except ImagePipeError as exc:
            log.warning(
                "Batch on %s failed at stage %d: %s", image_path, len(produced) + 1, exc.detail
            )
            self.discard(produced)
            raise
        except Exception as exc:
            self.discard(produced)
            raise ProcessingError(f"Batch transformation failed: {exc}") from exc
        return produced

    def discard(self, results: list[ExecutionResult]) -> list[FileSystemError]:
        """Remove the files of results that will not be persisted."""
        return remove_files([r.output_path for r in results])

    def _run_stage(
        self, input_path: str, op_type: OperationType, params: OperationParams
    ) -> ExecutionResult:
        output = self.dispatcher.apply(input_path, op_type, params)
        try:
            info = self.inspector.inspect(output)
        except InvalidImageError as exc:
            remove_file(output)
            raise ProcessingError(f"{op_type.value} produced an unreadable file") from exc
        return ExecutionResult(
            type=op_type,
            parameters=params,
            output_path=output,
            width=info.width,
            height=info.height,
        )

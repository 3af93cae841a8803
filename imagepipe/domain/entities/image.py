from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from imagepipe.domain.entities.transformation import TransformationEntity


@dataclass(frozen=True)
class ImageEntity:
    id: str
    user_id: str  # owner, fixed at upload
    path: str  # stored file under the upload directory
    url: str
    filename: str  # stored file name, also the public URL segment
    original_filename: str
    mime_type: str
    file_size: int  # bytes
    # dimensions of the original upload only
    width: int
    height: int
    uploaded_at: datetime
    transformations: tuple[TransformationEntity, ...] = ()
    tags: tuple[str, ...] = field(default_factory=tuple)
    is_public: bool = False

    def find_transformation(self, transformation_id: str) -> TransformationEntity | None:
        for t in self.transformations:
            if t.id == transformation_id:
                return t
        return None

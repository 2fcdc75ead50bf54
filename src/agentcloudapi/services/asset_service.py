"""Storage of uploaded files and their links to other objects."""

import logging
import os
from typing import Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..db.models import Asset as AssetModel
from ..utils import is_object_id, new_object_id

logger = logging.getLogger(__name__)


class AssetService:
    """Persist uploaded files on disk with a metadata record per file."""

    def __init__(self, db: Session, storage_path: Optional[str] = None):
        self.db = db
        self.storage_path = storage_path or settings.asset_storage_path

    def path_for(self, asset: AssetModel) -> str:
        return os.path.join(self.storage_path, asset.filename)

    def store(
        self,
        org_id: str,
        team_id: str,
        original_filename: str,
        mimetype: Optional[str],
        data: bytes,
    ) -> AssetModel:
        """Write the file and record it."""
        asset_id = new_object_id()
        extension = os.path.splitext(original_filename or "")[1]
        record = AssetModel(
            id=asset_id,
            org_id=org_id,
            team_id=team_id,
            filename=f"{asset_id}{extension}",
            original_filename=original_filename,
            mimetype=mimetype,
            size=len(data),
        )

        os.makedirs(self.storage_path, exist_ok=True)
        with open(self.path_for(record), "wb") as f:
            f.write(data)

        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"Stored asset {record.id} ({record.size} bytes) for team {team_id}")
        return record

    def attach_asset_to_object(
        self, asset_id: Optional[str], object_id: str, collection: str
    ) -> Optional[AssetModel]:
        """Link an asset to an object; returns None if there is no such asset."""
        if not is_object_id(asset_id):
            return None
        record = self.db.get(AssetModel, asset_id)
        if not record:
            return None
        record.linked_to_id = object_id
        record.linked_collection = collection
        self.db.commit()
        return record

    @staticmethod
    def icon_for(asset: Optional[AssetModel], linked_id: str) -> Optional[dict]:
        """Icon reference stored on the owning object."""
        if asset is None:
            return None
        return {"id": asset.id, "filename": asset.filename, "linked_id": linked_id}

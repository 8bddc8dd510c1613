from typing import AsyncIterator, Optional, Tuple

from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket

from hackmates.database.document_store import to_object_id, translate_errors
from hackmates.errors import NotFoundError


class BlobStore:
    """Files kept in GridFS, addressed by the id GridFS assigns."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        public_base_url: str = "",
        bucket_name: str = "blobs",
        bucket: Optional[AsyncIOMotorGridFSBucket] = None,
    ) -> None:
        self._db = db
        self._bucket_name = bucket_name
        self._bucket = bucket
        self._public_base_url = public_base_url

    @property
    def bucket(self) -> AsyncIOMotorGridFSBucket:
        if self._bucket is None:
            self._bucket = AsyncIOMotorGridFSBucket(self._db, bucket_name=self._bucket_name)
        return self._bucket

    async def upload(self, path: str, data: bytes, content_type: Optional[str] = None) -> str:
        with translate_errors():
            file_id = await self.bucket.upload_from_stream(
                path, data, metadata={"content_type": content_type or "application/octet-stream"}
            )
        return str(file_id)

    def get_download_url(self, ref: str) -> str:
        return f"{self._public_base_url}/files/{ref}"

    async def open(self, ref: str) -> Tuple[str, AsyncIterator[bytes]]:
        oid = to_object_id(ref)
        if oid is None:
            raise NotFoundError(f"No file {ref}")
        with translate_errors():
            try:
                grid_out = await self.bucket.open_download_stream(oid)
            except NoFile as exc:
                raise NotFoundError(f"No file {ref}") from exc
        content_type = (grid_out.metadata or {}).get("content_type", "application/octet-stream")

        async def chunks() -> AsyncIterator[bytes]:
            while True:
                chunk = await grid_out.readchunk()
                if not chunk:
                    break
                yield chunk

        return content_type, chunks()

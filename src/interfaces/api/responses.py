"""Streaming responses for stored files and rendered downloads."""

from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from ...infrastructure.storage import LocalFileStorage
from ...modules.common.utils.file_utils import content_disposition
from ...modules.streaming.services import DownloadArtifact


def artifact_response(storage: LocalFileStorage, artifact: DownloadArtifact, inline: bool = False) -> StreamingResponse:
    """Stream ``artifact`` in storage-sized chunks.

    Temporary artifacts are deleted after the body has been sent.
    """
    disposition = content_disposition(artifact.filename, "inline" if inline else "attachment")
    background = BackgroundTask(storage.discard, artifact.path) if artifact.temporary else None
    return StreamingResponse(
        storage.iter_bytes(artifact.path),
        media_type=artifact.media_type,
        headers={"Content-Disposition": disposition, "Content-Length": str(artifact.size)},
        background=background,
    )

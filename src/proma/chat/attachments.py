"""Reading image attachments from local attachment storage.

An instance is injected into adapters as their image reader; adapters never
touch the filesystem themselves.
"""

import base64
import logging
from pathlib import Path
from typing import Optional, Union

from proma.conversation.models import FileAttachment
from proma.providers.types import ImageAttachmentData

logger = logging.getLogger(__name__)


def is_image_attachment(attachment: FileAttachment) -> bool:
    return attachment.media_type.lower().startswith("image/")


class LocalAttachmentReader:
    """Base64-encodes image attachments stored under a root directory.

    Non-image attachments are ignored. Missing or unreadable files are logged
    and skipped so one broken attachment never fails a turn.
    """

    def __init__(self, root: Union[str, Path]) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, local_path: str) -> Optional[Path]:
        path = (self.root / local_path).resolve()
        # Reject references escaping the attachment root
        if path != self.root and self.root not in path.parents:
            logger.warning(f"Attachment path outside storage root: {local_path}")
            return None
        return path

    def __call__(self, attachments: Optional[list[FileAttachment]]) -> list[ImageAttachmentData]:
        if not attachments:
            return []

        images: list[ImageAttachmentData] = []
        for attachment in attachments:
            if not is_image_attachment(attachment):
                continue
            path = self._resolve(attachment.local_path)
            if path is None:
                continue
            try:
                data = path.read_bytes()
            except OSError as e:
                logger.warning(f"Skipping unreadable attachment {attachment.filename}: {e}")
                continue
            images.append(
                ImageAttachmentData(
                    media_type=attachment.media_type,
                    data=base64.b64encode(data).decode("ascii"),
                )
            )
        return images

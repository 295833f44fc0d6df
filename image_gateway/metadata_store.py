import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from image_gateway.errors import InternalError
from image_gateway.models import GENERATION_STATUS_COMPLETED, Generation, User

logger = logging.getLogger(__name__)


def utc_now():
    return datetime.now(timezone.utc)


class MetadataStore:
    """User and generation records.

    The user upsert and the generation write are committed separately.
    """

    def __init__(self, db: Session):
        self.db = db

    def touch_user(self, uid: str) -> User:
        """Insert the user on first activity, otherwise refresh last_active."""
        now = utc_now()
        try:
            user = self.db.get(User, uid)
            if user is None:
                user = User(uid=uid, last_active=now, created_at=now)
                self.db.add(user)
                try:
                    self.db.commit()
                    return user
                except IntegrityError:
                    # another request inserted the same uid first
                    self.db.rollback()
                    user = self.db.get(User, uid)
                    logger.info("User record created concurrently", extra={"uid": uid})
            user.last_active = now
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise InternalError(f"Failed to update user record: {exc}") from exc
        return user

    def create_generation(
        self,
        uid: str,
        generation_id: str,
        prompt: str,
        image_urls,
        original_url=None,
        input_image_url=None,
        has_input_image=False,
        aspect_ratio=None,
    ) -> Generation:
        """Write the generation record, replacing any record with the same id."""
        record = Generation(
            user_id=uid,
            generation_id=generation_id,
            prompt=prompt,
            original_url=original_url,
            input_image_url=input_image_url,
            has_input_image=has_input_image,
            aspect_ratio=aspect_ratio,
            generated_images=list(image_urls),
            count=len(image_urls),
            status=GENERATION_STATUS_COMPLETED,
            created_at=utc_now(),
        )
        try:
            record = self.db.merge(record)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise InternalError(f"Failed to save generation record: {exc}") from exc

        logger.info(
            "Saved generation record",
            extra={"uid": uid, "generation_id": generation_id, "count": len(image_urls)},
        )
        return record

"""
Option Store

Persisted key/value configuration controlled by the operator.

Keys:
- redirect_enabled: bool (default False)
- redirect_url: str (default "")

Values are stored as JSON text in the app_options table.
"""

import json
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from festival_tracker.core.exceptions import StorageError, ValidationError
from festival_tracker.core.validators import is_valid_url
from festival_tracker.db.models import AppOption, utc_now
from festival_tracker.services.redirect_service import RedirectConfig

logger = logging.getLogger(__name__)

REDIRECT_ENABLED = "redirect_enabled"
REDIRECT_URL = "redirect_url"


class OptionStore:
    """
    Service for reading and writing operator options.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize the option store with a database session.

        Args:
            session: Async database session for database operations
        """
        self.session = session

    async def get(self, key: str, default: Any = None) -> Any:
        """
        Read one option.

        Returns:
            The decoded value, or default if the option was never set
        """
        statement = select(AppOption.value).where(AppOption.key == key)
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to read option {key}", e) from e

        raw = result.scalar_one_or_none()
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError as e:
            raise StorageError(f"Option {key} holds unreadable data", e) from e

    async def set(self, key: str, value: Any) -> None:
        """Write one option (insert or update), without committing."""
        try:
            option = await self.session.get(AppOption, key)
            if option is None:
                option = AppOption(key=key, value=json.dumps(value))
            else:
                option.value = json.dumps(value)
                option.updated_at = utc_now()
            self.session.add(option)
            await self.session.flush()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to write option {key}", e) from e

    async def load_redirect_config(self) -> RedirectConfig:
        """Current redirect settings, with defaults for unset options."""
        enabled = await self.get(REDIRECT_ENABLED, False)
        destination_url = await self.get(REDIRECT_URL, "")
        return RedirectConfig(
            enabled=bool(enabled),
            destination_url=destination_url if isinstance(destination_url, str) else ""
        )

    async def save_redirect_settings(self, enabled: bool, url: str) -> RedirectConfig:
        """
        Validate and persist redirect settings.

        Nothing is written unless the URL is valid, so on error the
        previous settings stay in effect.

        Args:
            enabled: Whether to redirect after tracking
            url: Absolute http(s) URL, or empty

        Returns:
            The stored RedirectConfig

        Raises:
            ValidationError: If url is neither empty nor a valid absolute URL
            StorageError: If the options cannot be written
        """
        url = (url or "").strip()
        if url and not is_valid_url(url):
            raise ValidationError(
                REDIRECT_URL,
                url,
                "Please enter a valid URL for the redirect destination"
            )

        try:
            await self.set(REDIRECT_ENABLED, bool(enabled))
            await self.set(REDIRECT_URL, url)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StorageError("Failed to save redirect settings", e) from e
        except StorageError:
            await self.session.rollback()
            raise

        logger.info(f"Redirect settings updated: enabled={bool(enabled)} url={url!r}")
        return RedirectConfig(enabled=bool(enabled), destination_url=url)

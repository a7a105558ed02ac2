"""Configuration for pagetree.

Environment values are read lazily so tests and callers can change
``os.environ`` at runtime. A ``.env`` file in the working directory is loaded
once on import.
"""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from pagetree.dom.views import DEFAULT_INCLUDE_ATTRIBUTES

load_dotenv()

logger = logging.getLogger(__name__)

_TRUE_VALUES = {'1', 'true', 'yes', 'on'}
_FALSE_VALUES = {'0', 'false', 'no', 'off'}


def _env_bool(name: str, default: bool) -> bool:
	raw = os.getenv(name)
	if raw is None or not raw.strip():
		return default
	value = raw.strip().lower()
	if value in _TRUE_VALUES:
		return True
	if value in _FALSE_VALUES:
		return False
	logger.warning(f'Ignoring invalid boolean value {raw!r} for {name}, using {default}')
	return default


class Config:
	"""Lazy accessors for environment-driven settings."""

	@property
	def PAGETREE_LOGGING_LEVEL(self) -> str:
		return os.getenv('PAGETREE_LOGGING_LEVEL', 'info').lower()

	@property
	def PAGETREE_SETUP_LOGGING(self) -> bool:
		return _env_bool('PAGETREE_SETUP_LOGGING', False)

	@property
	def PAGETREE_BBOX_FILTERING(self) -> bool:
		return _env_bool('PAGETREE_BBOX_FILTERING', True)

	@property
	def PAGETREE_CONTAINMENT_THRESHOLD(self) -> str | None:
		return os.getenv('PAGETREE_CONTAINMENT_THRESHOLD') or None

	@property
	def PAGETREE_INCLUDE_ATTRIBUTES(self) -> list[str] | None:
		raw = os.getenv('PAGETREE_INCLUDE_ATTRIBUTES')
		if not raw:
			return None
		return [name.strip() for name in raw.split(',') if name.strip()]


CONFIG = Config()


class DOMSerializerConfig(BaseModel):
	"""Options for one serialization call."""

	model_config = ConfigDict(extra='forbid', validate_assignment=True)

	enable_bbox_filtering: bool = Field(
		default=True, description='Hide decorative descendants fully covered by links, buttons and comboboxes'
	)
	containment_threshold: float = Field(
		default=0.99, gt=0, le=1, description='Minimum fraction of a child area inside its container to hide it'
	)
	include_attributes: list[str] = Field(
		default_factory=lambda: list(DEFAULT_INCLUDE_ATTRIBUTES),
		description='Ordered allow-list of attributes rendered in the text output',
	)

	@field_validator('include_attributes')
	@classmethod
	def _strip_attribute_names(cls, value: list[str]) -> list[str]:
		return [name.strip() for name in value if name and name.strip()]

	@classmethod
	def from_env(cls) -> 'DOMSerializerConfig':
		values: dict = {'enable_bbox_filtering': CONFIG.PAGETREE_BBOX_FILTERING}
		if CONFIG.PAGETREE_CONTAINMENT_THRESHOLD is not None:
			values['containment_threshold'] = CONFIG.PAGETREE_CONTAINMENT_THRESHOLD
		if CONFIG.PAGETREE_INCLUDE_ATTRIBUTES is not None:
			values['include_attributes'] = CONFIG.PAGETREE_INCLUDE_ATTRIBUTES
		return cls.model_validate(values)

from pagetree.config import CONFIG, DOMSerializerConfig
from pagetree.dom.serializer.serializer import DOMTreeSerializer
from pagetree.dom.service import DomService
from pagetree.dom.views import (
	DEFAULT_INCLUDE_ATTRIBUTES,
	DOMSelectorMap,
	EnhancedDOMTree,
	EnhancedDOMTreeNode,
	SerializedDOMState,
	SimplifiedNode,
	TargetAllTrees,
)
from pagetree.exceptions import MalformedDOMTreeError, PageTreeError
from pagetree.logging_config import setup_logging

if CONFIG.PAGETREE_SETUP_LOGGING:
	setup_logging()

__all__ = [
	'CONFIG',
	'DEFAULT_INCLUDE_ATTRIBUTES',
	'DOMSelectorMap',
	'DOMSerializerConfig',
	'DOMTreeSerializer',
	'DomService',
	'EnhancedDOMTree',
	'EnhancedDOMTreeNode',
	'MalformedDOMTreeError',
	'PageTreeError',
	'SerializedDOMState',
	'SimplifiedNode',
	'TargetAllTrees',
	'setup_logging',
]

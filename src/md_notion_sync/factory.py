"""Production wiring: builds a ``SyncEngine`` from a validated ``Config``."""

import logging
from pathlib import Path

from .config import Config
from .core.client import NotionPageGateway
from .sync.discovery import discover_documents
from .sync.documents import FileSystemDocumentSource
from .sync.engine import SyncEngine
from .sync.links import LinkReconciler
from .sync.state import JsonMappingStore

logger = logging.getLogger(__name__)


def source_root(config: Config) -> Path:
    return Path(config.source_root).expanduser()


def mapping_path(config: Config) -> Path:
    """Mapping file location; relative paths are relative to the CWD."""
    return Path(config.mapping_file).expanduser()


def create_gateway(config: Config) -> NotionPageGateway:
    return NotionPageGateway(
        token=config.notion_token,
        parent_page_id=config.parent_page_id,
        database_id=config.database_id,
        title_property=config.title_property,
    )


def create_mapping_store(config: Config) -> JsonMappingStore:
    return JsonMappingStore(mapping_path(config))


def create_engine(
    config: Config,
    gateway: NotionPageGateway | None = None,
    mappings: JsonMappingStore | None = None,
) -> SyncEngine:
    """Assemble the engine and its collaborators.

    Args:
        config: Validated configuration.
        gateway: Reuse an existing gateway (MCP server keeps one alive).
        mappings: Reuse an already-loaded mapping store.
    """
    documents = FileSystemDocumentSource(source_root(config))
    gateway = gateway or create_gateway(config)
    reconciler = None
    if config.link_styles:
        reconciler = LinkReconciler(
            documents,
            gateway,
            styles=config.link_styles,
            github=config.github,
        )
    logger.debug(
        "Engine: root=%s mapping=%s links=%s",
        documents.base_path,
        mapping_path(config),
        sorted(s.value for s in config.link_styles),
    )
    return SyncEngine(
        documents=documents,
        gateway=gateway,
        mappings=mappings or create_mapping_store(config),
        link_reconciler=reconciler,
        page_permissions=config.edit_access,
        preserve_ids=config.preserve_ids,
        max_parallel=config.max_parallel_requests,
        last_commit=config.github_sha,
    )


def discover(config: Config) -> list[str]:
    """Document paths selected by the config's include/exclude globs."""
    return discover_documents(
        source_root(config), config.files_pattern, config.exclude
    )

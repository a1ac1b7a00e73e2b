import os
from dataclasses import asdict, replace
from pathlib import Path
from typing import Mapping, Optional

from embedgrab.app.commands import CommandBus, ResolveStream, ResolveEntry, InspectDocument, ShowConfig, SetConfig
from embedgrab.app.media_service import MediaService
from embedgrab.core.config import ExtractorSettings, SecureConfigRepository
from embedgrab.extractors.registry import ExtractorRegistry
from embedgrab.extractors.embed.extractor import EmbedExtractor
from embedgrab.extractors.embed.hosts import UQLOAD, GENERIC
from embedgrab.infra.network.http import HttpNetworkAdapter

def get_config_root() -> Path:
    """Directory holding the 'embedgrab' config folder (EMBEDGRAB_HOME overrides)."""
    return Path(os.environ.get("EMBEDGRAB_HOME") or (Path.home() / ".config"))

def build_registry(network, settings: ExtractorSettings) -> ExtractorRegistry:
    registry = ExtractorRegistry()
    registry.register(EmbedExtractor(network, settings, profile=UQLOAD))
    # Catch-all for any other http(s) embed host
    registry.register(EmbedExtractor(network, settings, profile=GENERIC))
    return registry

def create_container(config_root: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None,
                     network=None) -> dict:
    # 1. Config
    config_repo = SecureConfigRepository(config_root or get_config_root())
    settings = ExtractorSettings.load(config_repo, environ=environ)

    # 2. Infra
    network = network or HttpNetworkAdapter(settings)
    registry = build_registry(network, settings)
    media_service = MediaService(registry)

    # 3. Handlers
    def handle_resolve_stream(cmd: ResolveStream):
        return media_service.resolve_stream(cmd.url, max_retries=cmd.max_retries, cancel_event=cmd.cancel_event)

    def handle_resolve_entry(cmd: ResolveEntry):
        return media_service.resolve_entry(cmd.record, max_retries=cmd.max_retries, cancel_event=cmd.cancel_event)

    def handle_inspect_document(cmd: InspectDocument):
        return media_service.inspect_document(cmd.text, platform=cmd.platform)

    def handle_show_config(cmd: ShowConfig):
        current = asdict(ExtractorSettings.load(config_repo, environ=environ))
        if cmd.key:
            if cmd.key not in current:
                raise KeyError(f"Unknown setting: {cmd.key}")
            return {cmd.key: current[cmd.key]}
        return current

    def handle_set_config(cmd: SetConfig):
        value = ExtractorSettings.coerce(cmd.key, cmd.value)
        # Validate against the dataclass invariants before persisting
        replace(ExtractorSettings(), **{cmd.key: value})
        config_repo.set(cmd.key, value)
        return {cmd.key: value}

    bus = CommandBus()
    bus.register(ResolveStream, handle_resolve_stream)
    bus.register(ResolveEntry, handle_resolve_entry)
    bus.register(InspectDocument, handle_inspect_document)
    bus.register(ShowConfig, handle_show_config)
    bus.register(SetConfig, handle_set_config)

    return {
        "bus": bus,
        "settings": settings,
        "config_repo": config_repo,
        "network": network,
        "registry": registry,
        "media_service": media_service,
    }

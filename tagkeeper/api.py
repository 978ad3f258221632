"""Public Python API for tagkeeper."""

from __future__ import annotations

from collections.abc import Mapping
from contextlib import ExitStack, contextmanager
from pathlib import Path

from .cache import (
    IndexState,
    cache_dir_context,
    delete_index,
    load_state,
    set_cache_dir,
)
from .config import (
    Config,
    config_dir_context,
    config_from_json,
    load_config,
    set_config_dir,
)
from .services.indexer_service import Indexer
from .services.lifecycle_service import IndexController
from .services.update_service import UpdateResult
from .utils import find_project_root


class TagkeeperInputError(ValueError):
    """Raised when the tagkeeper public API input is invalid."""


_RUNTIME_CONFIG: Config | None = None


@contextmanager
def _data_dir_context(
    data_dir: Path | str | None,
    *,
    config_dir: Path | str | None,
    cache_dir: Path | str | None,
):
    if data_dir is None and config_dir is None and cache_dir is None:
        yield
        return
    effective_config_dir = config_dir if config_dir is not None else data_dir
    effective_cache_dir = cache_dir if cache_dir is not None else data_dir
    with ExitStack() as stack:
        if effective_config_dir is not None:
            stack.enter_context(config_dir_context(effective_config_dir))
        if effective_cache_dir is not None:
            stack.enter_context(cache_dir_context(effective_cache_dir))
        yield


def set_data_dir(path: Path | str | None) -> None:
    """Set the base directory for config and generated tags."""
    set_config_dir(path)
    set_cache_dir(path)


def set_config_json(
    payload: Mapping[str, object] | str | None, *, replace: bool = False
) -> None:
    """Set in-memory config for API calls from a JSON string or mapping."""
    global _RUNTIME_CONFIG
    if payload is None:
        _RUNTIME_CONFIG = None
        return
    base = None if replace else (_RUNTIME_CONFIG or load_config())
    try:
        _RUNTIME_CONFIG = config_from_json(payload, base=base)
    except ValueError as exc:
        raise TagkeeperInputError(str(exc)) from exc


class TagkeeperClient:
    """Session-style API wrapper holding one lifecycle controller."""

    def __init__(
        self,
        *,
        data_dir: Path | str | None = None,
        config_dir: Path | str | None = None,
        cache_dir: Path | str | None = None,
        use_config: bool = True,
        config: Config | Mapping[str, object] | str | None = None,
        indexer: Indexer | None = None,
    ) -> None:
        self.data_dir = data_dir
        self.config_dir = config_dir
        self.cache_dir = cache_dir
        with self._dirs():
            resolved = _resolve_config(use_config, config, _RUNTIME_CONFIG)
        self.controller = IndexController(resolved, indexer=indexer)

    @property
    def config(self) -> Config:
        return self.controller.config

    @contextmanager
    def _dirs(self):
        with _data_dir_context(
            self.data_dir, config_dir=self.config_dir, cache_dir=self.cache_dir
        ):
            yield

    def generate(self, path: Path | str | None = None) -> UpdateResult:
        """Build a fresh index for the project containing *path*."""
        root = _project_root(path)
        with self._dirs():
            return self.controller.build(root)

    def refresh(self, path: Path | str | None = None) -> UpdateResult:
        """Refresh the project index, resuming one built by another process."""
        location = _location(path)
        root = find_project_root(location)
        with self._dirs():
            self.controller.resume(root)
            return self.controller.ensure_index(location)

    def notify_saved(self, path: Path | str) -> UpdateResult | None:
        with self._dirs():
            return self.controller.notify_saved(path)

    def mark_dirty(self) -> bool:
        with self._dirs():
            return self.controller.mark_dirty()

    def status(self, path: Path | str | None = None) -> IndexState | None:
        root = _project_root(path)
        with self._dirs():
            if self.controller.active_root == root:
                return self.controller.state
            return load_state(root)

    def files(self, path: Path | str | None = None) -> list[str]:
        """Return the files recorded in the project's tags index."""
        root = _project_root(path)
        with self._dirs():
            if not self.controller.resume(root):
                return []
            return self.controller.recorded_files()

    def symbols(self, path: Path | str | None = None) -> list[str]:
        """Return the sorted tag names recorded in the project's index."""
        root = _project_root(path)
        with self._dirs():
            if not self.controller.resume(root):
                return []
            return self.controller.symbol_names()

    def clear(self, path: Path | str | None = None) -> bool:
        """Delete the generated index for the project containing *path*."""
        root = _project_root(path)
        with self._dirs():
            if self.controller.active_root == root:
                return self.controller.teardown()
            return delete_index(root)


@contextmanager
def config_context(
    payload: Mapping[str, object] | str | None,
    *,
    replace: bool = False,
    data_dir: Path | str | None = None,
    config_dir: Path | str | None = None,
    cache_dir: Path | str | None = None,
    indexer: Indexer | None = None,
):
    """Yield a client configured from *payload* for scoped API usage."""
    with _data_dir_context(data_dir, config_dir=config_dir, cache_dir=cache_dir):
        base = None if replace else load_config()
        try:
            config = config_from_json(payload or {}, base=base)
        except ValueError as exc:
            raise TagkeeperInputError(str(exc)) from exc
    yield TagkeeperClient(
        data_dir=data_dir,
        config_dir=config_dir,
        cache_dir=cache_dir,
        config=config,
        indexer=indexer,
    )


def generate(
    path: Path | str | None = None,
    *,
    use_config: bool = True,
    config: Config | Mapping[str, object] | str | None = None,
    indexer: Indexer | None = None,
    data_dir: Path | str | None = None,
    config_dir: Path | str | None = None,
    cache_dir: Path | str | None = None,
) -> UpdateResult:
    """Build the tags index for the project containing *path* from scratch."""
    client = TagkeeperClient(
        data_dir=data_dir,
        config_dir=config_dir,
        cache_dir=cache_dir,
        use_config=use_config,
        config=config,
        indexer=indexer,
    )
    return client.generate(path)


def refresh(
    path: Path | str | None = None,
    *,
    use_config: bool = True,
    config: Config | Mapping[str, object] | str | None = None,
    indexer: Indexer | None = None,
    data_dir: Path | str | None = None,
    config_dir: Path | str | None = None,
    cache_dir: Path | str | None = None,
) -> UpdateResult:
    """Bring the project's tags index up to date, building it when missing."""
    client = TagkeeperClient(
        data_dir=data_dir,
        config_dir=config_dir,
        cache_dir=cache_dir,
        use_config=use_config,
        config=config,
        indexer=indexer,
    )
    return client.refresh(path)


def clear_index(
    path: Path | str | None = None,
    *,
    data_dir: Path | str | None = None,
    cache_dir: Path | str | None = None,
) -> bool:
    """Delete the generated index for the project containing *path*."""
    root = _project_root(path)
    with _data_dir_context(data_dir, config_dir=None, cache_dir=cache_dir):
        return delete_index(root)


def _location(path: Path | str | None) -> Path:
    return Path(path).expanduser().resolve() if path is not None else Path.cwd()


def _project_root(path: Path | str | None) -> Path:
    return find_project_root(_location(path))


def _resolve_config(
    use_config: bool,
    override: Config | Mapping[str, object] | str | None,
    runtime_config: Config | None,
) -> Config:
    if runtime_config is not None:
        base = runtime_config
    elif use_config:
        try:
            base = load_config()
        except ValueError as exc:
            raise TagkeeperInputError(str(exc)) from exc
    else:
        base = Config()
    if override is None:
        return base
    if isinstance(override, Config):
        return override
    try:
        return config_from_json(override, base=base)
    except ValueError as exc:
        raise TagkeeperInputError(str(exc)) from exc

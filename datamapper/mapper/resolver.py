"""
Mapping reference resolution.

Supports:
- In-memory registrations ("name" -> text)
- Stored mappings: "mapping:5" or "mapping:label", through an injected store
- Module files: "module:xml/oai_dc.xml", under the module mapping directory
- User files: "user:custom.ini", under the user mapping directory
- Remote files: "https://...", fetched with requests
- Plain paths: absolute, relative to the including mapping, then common/ and
  the module directory
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional
import logging
import os

import requests

from datamapper.config import app_config

logger = logging.getLogger(__name__)

Store = Callable[[str], Optional[str]]


@dataclass(frozen=True)
class ResolvedReference:
    """Content found for a reference."""

    key: str  # canonical identity, used to detect include cycles
    content: str
    origin: str  # memory, store, remote, module, user, file
    path: Optional[str] = None

    @property
    def directory(self) -> Optional[str]:
        return str(Path(self.path).parent) if self.path else None

    @property
    def extension(self) -> str:
        name = self.path or self.key
        return name.rsplit(".", 1)[-1].lower() if "." in name else ""


class MappingResolver:
    """Resolves mapping and stylesheet references into text."""

    def __init__(
        self,
        module_dir: Optional[str] = None,
        user_dir: Optional[str] = None,
        store: Optional[Store] = None,
        http_timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize resolver

        Args:
            module_dir: Directory of bundled mappings ("module:" prefix)
            user_dir: Directory of user mappings ("user:" prefix)
            store: Callable returning stored mapping text by identifier
            http_timeout: Timeout in seconds for remote references
            session: Optional requests session for remote references
        """
        self.module_dir = module_dir or app_config.module_mapping_dir
        self.user_dir = user_dir or app_config.user_mapping_dir
        self.store = store
        self.http_timeout = http_timeout or app_config.http_timeout
        self.session = session or requests.Session()
        self.registry: Dict[str, str] = {}

    def register(self, name: str, content: str) -> None:
        """Register mapping text under a name."""
        self.registry[name] = content

    def resolve(self, reference: str, context: Optional[str] = None) -> Optional[str]:
        """
        Resolve a reference into mapping text.

        Args:
            reference: Mapping reference
            context: Directory of the including mapping, for relative paths

        Returns:
            Optional[str]: Text, or None when not found
        """
        resolved = self.locate(reference, context)
        return resolved.content if resolved else None

    def locate(self, reference: str, context: Optional[str] = None) -> Optional[ResolvedReference]:
        """Resolve a reference with its canonical key and origin."""
        reference = reference.strip()
        if not reference:
            return None

        if reference in self.registry:
            return ResolvedReference(reference, self.registry[reference], "memory")

        if reference.startswith("mapping:"):
            return self._from_store(reference)

        if reference.startswith(("http://", "https://")):
            return self._from_remote(reference)

        if reference.startswith("module:"):
            return self._from_directory(self.module_dir, reference[len("module:"):], "module")

        if reference.startswith("user:"):
            return self._from_directory(self.user_dir, reference[len("user:"):], "user")

        return self._from_path(reference, context)

    def _from_store(self, reference: str) -> Optional[ResolvedReference]:
        if self.store is None:
            logger.debug(f"No mapping store configured for {reference}")
            return None
        content = self.store(reference[len("mapping:"):])
        if content is None:
            return None
        return ResolvedReference(reference, content, "store")

    def _from_remote(self, url: str) -> Optional[ResolvedReference]:
        try:
            response = self.session.get(url, timeout=self.http_timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning(f"Cannot fetch remote reference {url}: {exc}")
            return None
        return ResolvedReference(url, response.text, "remote")

    def _from_directory(self, base_dir: str, relative: str, origin: str) -> Optional[ResolvedReference]:
        base = Path(base_dir).resolve()
        path = (base / relative).resolve()
        if os.path.commonpath([str(base), str(path)]) != str(base):
            logger.warning(f"Reference escapes its directory: {origin}:{relative}")
            return None
        return self._read_file(path, origin)

    def _from_path(self, reference: str, context: Optional[str]) -> Optional[ResolvedReference]:
        candidates = []
        if os.path.isabs(reference):
            candidates.append(Path(reference))
        else:
            if context:
                candidates.append(Path(context) / reference)
            candidates.append(Path(self.module_dir) / "common" / reference)
            candidates.append(Path(self.module_dir) / reference)

        for candidate in candidates:
            resolved = self._read_file(candidate.resolve(), "file")
            if resolved is not None:
                return resolved
        return None

    @staticmethod
    def _read_file(path: Path, origin: str) -> Optional[ResolvedReference]:
        if not path.is_file():
            return None
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(f"Cannot read mapping file {path}: {exc}")
            return None
        return ResolvedReference(str(path), content, origin, str(path))

"""
Loading target lists.

A targets file is a JSON list of objects (or an object with a ``targets``
list)::

    [
      {"id": 42, "name": "Capanna Regina Margherita", "provider_type": "hut-reservation"},
      {"id": "32383", "name": "Refuge de Bellachat", "provider_type": "montblanc",
       "sub_resources": ["Refuge"]}
    ]

``url`` may be omitted when the provider can build it from the id.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from pydantic import ValidationError

from hutwatch.exceptions import ConfigurationException
from hutwatch.orchestration.types import Target
from hutwatch.providers.base import TargetId
from hutwatch.providers.registry import ProviderRegistry, provider_registry

logger = logging.getLogger(__name__)


def load_targets(path: Union[str, Path], registry: Optional[ProviderRegistry] = None) -> List[Target]:
    """
    Load targets from a JSON file.

    Args:
        path: Path to the targets file
        registry: Registry used to build missing URLs (defaults to the global one)

    Returns:
        Targets in file order

    Raises:
        ConfigurationException: If the file is missing, not JSON or malformed
    """
    registry = provider_registry if registry is None else registry
    path = Path(path)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationException(f"Targets file not found: {path}") from e
    except (OSError, ValueError) as e:
        raise ConfigurationException(f"Could not read targets file {path}: {e}") from e

    if isinstance(data, dict):
        data = data.get("targets")
    if not isinstance(data, list):
        raise ConfigurationException(f"Targets file {path} must contain a list of targets")

    targets = [_parse_target(entry, index, registry) for index, entry in enumerate(data)]
    logger.info(f"Loaded {len(targets)} targets from {path}")
    return targets


def build_targets(
    provider_type: str,
    ids: Iterable[TargetId],
    registry: Optional[ProviderRegistry] = None,
) -> List[Target]:
    """
    Build targets for bare ids of one provider.

    Args:
        provider_type: Registered provider type tag
        ids: Target ids in the booking system

    Raises:
        ConfigurationException: If the provider is unknown or cannot build URLs
    """
    registry = provider_registry if registry is None else registry
    provider_class = registry.get_provider_class(provider_type)
    if provider_class is None:
        raise ConfigurationException(
            f"Provider '{provider_type}' not found. "
            f"Available providers: {', '.join(registry.available()) or 'none'}"
        )

    targets = []
    for target_id in ids:
        try:
            url = provider_class.build_url(target_id)
        except NotImplementedError as e:
            raise ConfigurationException(str(e)) from e
        targets.append(
            Target(
                id=target_id,
                name=f"{provider_type} {target_id}",
                provider_type=provider_type,
                url=url,
            )
        )
    return targets


def _parse_target(entry: Any, index: int, registry: ProviderRegistry) -> Target:
    if not isinstance(entry, dict):
        raise ConfigurationException(f"Target #{index} must be an object, got {type(entry).__name__}")

    entry = dict(entry)
    if "url" not in entry and "provider_type" in entry and "id" in entry:
        provider_class = registry.get_provider_class(str(entry["provider_type"]))
        if provider_class is not None:
            try:
                entry["url"] = provider_class.build_url(entry["id"])
            except NotImplementedError:
                pass
    entry.setdefault("name", f"{entry.get('provider_type', 'target')} {entry.get('id')}")

    try:
        return Target(**entry)
    except ValidationError as e:
        raise ConfigurationException(f"Invalid target #{index}: {e}") from e

"""
Exclusion providers for automatic promotions.

An exclusion provider vetoes promotions for an order: anything whose id it
returns is dropped from the automatic candidate set before the rule filters
run. Storefronts register their own providers (e.g. "no automatic promos on
orders that contain gift cards") without touching the handler.

Design decisions:
- The registry is built once at startup and handed to the pipeline; there is
  no process-wide list the handler reaches into
- Registered objects that can't compute exclusions are skipped, not rejected
- A provider that raises or returns garbage is skipped for the current run
  and logged, unless strict mode is on, in which case the whole activation
  aborts with ExclusionProviderFailure
"""

import importlib
import logging
from typing import Any, Iterable, Optional, Protocol, runtime_checkable

from shared.errors import ConfigurationError, ExclusionProviderFailure
from shared.models import Order

logger = logging.getLogger("exclusions")


@runtime_checkable
class ExclusionProvider(Protocol):
    """Anything that can compute order-based promotion exclusions."""

    def excluded_promotion_ids(self, order: Order) -> Iterable[str]: ...


def provider_name(provider: Any) -> str:
    return getattr(provider, "name", None) or type(provider).__name__


class ExclusionRegistry:
    """
    Read-only list of exclusion providers.

    Example:
        registry = ExclusionRegistry([GiftCardExclusions()], strict=False)
        excluded = registry.excluded_ids(order)
    """

    def __init__(self, providers: Optional[Iterable[Any]] = None, strict: bool = False):
        """
        Args:
            providers: Registered entries. Entries without an
                       ``excluded_promotion_ids`` method are ignored.
            strict: Raise on a failing provider instead of skipping it.
        """
        self.strict = strict
        entries = list(providers or ())
        self._providers: tuple[ExclusionProvider, ...] = tuple(
            p for p in entries if isinstance(p, ExclusionProvider)
        )
        skipped = len(entries) - len(self._providers)
        if skipped:
            logger.debug(f"Ignored {skipped} registered entries without exclusion support")

    @property
    def providers(self) -> tuple[ExclusionProvider, ...]:
        return self._providers

    def __len__(self) -> int:
        return len(self._providers)

    def excluded_ids(self, order: Order) -> set[str]:
        """
        Union of every provider's exclusions for this order.

        Each provider is asked exactly once.
        """
        excluded: set[str] = set()
        for provider in self._providers:
            excluded |= self._provider_exclusions(provider, order)
        return excluded

    def _provider_exclusions(self, provider: ExclusionProvider, order: Order) -> set[str]:
        name = provider_name(provider)
        try:
            result = provider.excluded_promotion_ids(order)
            if result is None or isinstance(result, (str, bytes)):
                raise TypeError(f"expected an iterable of ids, got {type(result).__name__}")
            ids = {str(promotion_id) for promotion_id in result}
        except Exception as e:
            if self.strict:
                raise ExclusionProviderFailure(name, str(e)) from e
            logger.warning(f"Skipping exclusion provider {name} for order {order.id}: {e}")
            return set()

        if ids:
            logger.debug(f"{name} excluded {sorted(ids)} for order {order.id}")
        return ids


def load_provider(path: str) -> Any:
    """
    Import and instantiate a provider from ``module:attribute``.

    A class is instantiated with no arguments; any other attribute is used as is.
    """
    module_name, _, attribute = path.partition(":")
    if not module_name or not attribute:
        raise ConfigurationError(f"Exclusion provider path must look like 'module:attribute', got {path!r}")
    try:
        module = importlib.import_module(module_name)
        target = getattr(module, attribute)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load exclusion provider {path!r}: {e}") from e
    return target() if isinstance(target, type) else target


def build_registry(paths: Iterable[str], strict: bool = False) -> ExclusionRegistry:
    """Build the registry from configured provider paths."""
    providers = [load_provider(path) for path in paths]
    registry = ExclusionRegistry(providers, strict=strict)
    logger.info(f"Registered {len(registry)} exclusion provider(s) (strict={strict})")
    return registry

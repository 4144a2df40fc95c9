"""
Provider registry: which providers run, in which order, for each subject kind.
"""

from typing import Any, Dict, List, Optional, Sequence, Type

from netknife.config.logging import get_logger
from netknife.core.cache import ResponseCache
from netknife.core.transport import Transport
from netknife.integrations.providers import (
    AbuseIPDBClient,
    BreachDirectoryClient,
    DnsClient,
    EmailAuthClient,
    EmailRepClient,
    HunterClient,
    IpApiClient,
    IPQSEmailClient,
    IPQualityScoreClient,
    OsvClient,
    ProviderClient,
    RdapClient,
)
from netknife.models.intel import SubjectKind

logger = get_logger(__name__)


class ProviderRegistry:
    """Ordered provider lists per subject kind.

    Registration order is the outcome order of every aggregate result.
    """

    def __init__(self):
        self._by_kind: Dict[SubjectKind, List[ProviderClient]] = {kind: [] for kind in SubjectKind}

    def register(self, provider: ProviderClient,
                 kinds: Optional[Sequence[SubjectKind]] = None) -> None:
        """Register ``provider`` for ``kinds`` (its supported kinds by default)."""
        for kind in kinds or sorted(provider.supported_kinds, key=_kind_order):
            if not provider.supports(kind):
                raise ValueError(f"{provider.provider_id} does not support {kind.value}")
            providers = self._by_kind[kind]
            if any(p.provider_id == provider.provider_id for p in providers):
                raise ValueError(f"{provider.provider_id} already registered for {kind.value}")
            providers.append(provider)

    def providers_for(self, kind: SubjectKind) -> List[ProviderClient]:
        return list(self._by_kind[kind])

    def all_providers(self) -> List[ProviderClient]:
        """Every distinct registered provider, in first-registration order."""
        seen: Dict[int, ProviderClient] = {}
        for kind in SubjectKind:
            for provider in self._by_kind[kind]:
                seen.setdefault(id(provider), provider)
        return list(seen.values())

    def describe(self) -> Dict[str, List[Dict[str, Any]]]:
        """Provider listing per kind for the providers endpoint."""
        return {
            kind.value: [
                {
                    "id": provider.provider_id,
                    "name": provider.display_name,
                    "configured": provider.configured,
                    "requiresApiKey": provider.requires_api_key,
                    "cacheTtl": provider.cache_ttl,
                }
                for provider in self._by_kind[kind]
            ]
            for kind in SubjectKind
        }


def _kind_order(kind: SubjectKind) -> int:
    return list(SubjectKind).index(kind)


# Registration order per kind
DEFAULT_PROVIDER_ORDER: Dict[SubjectKind, List[Type[ProviderClient]]] = {
    SubjectKind.EMAIL: [EmailRepClient, BreachDirectoryClient, IPQSEmailClient,
                        HunterClient, EmailAuthClient],
    SubjectKind.IP: [IpApiClient, AbuseIPDBClient, IPQualityScoreClient],
    SubjectKind.DOMAIN: [DnsClient, RdapClient, EmailAuthClient],
    SubjectKind.PACKAGE: [OsvClient],
}


def build_default_registry(settings, transport: Transport,
                           cache: Optional[ResponseCache] = None) -> ProviderRegistry:
    """Instantiate and register every enabled provider from configuration."""
    api_keys = settings.get_provider_api_keys()
    disabled = {provider_id.strip().lower() for provider_id in settings.DISABLED_PROVIDERS}
    instances: Dict[str, ProviderClient] = {}
    registry = ProviderRegistry()

    for kind, provider_classes in DEFAULT_PROVIDER_ORDER.items():
        for provider_class in provider_classes:
            provider_id = provider_class.provider_id
            if provider_id in disabled:
                continue

            provider = instances.get(provider_id)
            if provider is None:
                kwargs: Dict[str, Any] = {
                    "cache": cache,
                    "api_key": api_keys.get(provider_id),
                    "cache_ttl": settings.CACHE_TTL_OVERRIDES.get(provider_id),
                    "timeout": settings.PROVIDER_TIMEOUT_OVERRIDES.get(provider_id),
                    "user_agent": settings.USER_AGENT,
                }
                if provider_class is EmailAuthClient:
                    kwargs["dkim_selector"] = settings.DKIM_SELECTOR
                provider = provider_class(transport, **kwargs)
                instances[provider_id] = provider

                if not provider.configured:
                    logger.info("provider_not_configured", provider=provider_id)

            registry.register(provider, kinds=[kind])

    logger.info(
        "provider_registry_built",
        providers=sorted(instances),
        disabled=sorted(disabled),
    )
    return registry

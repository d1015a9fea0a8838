"""Per-city feature toggles."""

from __future__ import annotations

import structlog

from community.domain.models import CityFeature, FeatureSlug
from community.errors import InvalidInput
from community.repos.memory import CityFeatureRepository
from community.services.access import AccessPolicy

logger = structlog.get_logger(__name__)


def _feature(slug: str) -> FeatureSlug:
    try:
        return FeatureSlug(slug)
    except ValueError as exc:
        raise InvalidInput("Invalid feature") from exc


class SettingsService:
    """Feature switches a city admin can turn off for their city.

    A feature with no stored row counts as enabled, so a freshly created city
    shows every feature until an admin says otherwise.
    """

    def __init__(self, access: AccessPolicy, feature_repo: CityFeatureRepository) -> None:
        self.access = access
        self.feature_repo = feature_repo

    def get_feature_toggles(self, actor_id: str | None, city_slug: str) -> list[CityFeature]:
        city = self.access.resolve_city(city_slug)
        self.access.require_admin(actor_id, city, "view feature settings")
        return self.feature_repo.list_for_city(city.id)

    def toggle_feature(
        self, actor_id: str | None, city_slug: str, feature_slug: str, enabled: bool
    ) -> CityFeature:
        city = self.access.resolve_city(city_slug)
        actor_id = self.access.require_admin(actor_id, city, "change feature settings")
        slug = _feature(feature_slug)

        feature = self.feature_repo.upsert(city.id, slug, enabled)
        logger.info(
            "feature.toggled",
            city_id=city.id,
            feature=slug.value,
            enabled=enabled,
            actor_id=actor_id,
        )
        return feature

    def is_feature_enabled(self, city_slug: str, feature_slug: str) -> bool:
        city = self.access.resolve_city(city_slug)
        stored = self.feature_repo.get(city.id, _feature(feature_slug))
        return True if stored is None else stored.is_enabled

    def enabled_features(self, city_slug: str) -> dict[str, bool]:
        city = self.access.resolve_city(city_slug)
        features = {slug.value: True for slug in FeatureSlug}
        for stored in self.feature_repo.list_for_city(city.id):
            features[stored.feature_slug.value] = stored.is_enabled
        return features

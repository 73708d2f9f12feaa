from enum import StrEnum


class Feature(StrEnum):
    FACILITIES = "facilities"
    RESERVATIONS = "reservations"


class Environment(StrEnum):
    LOCAL = "local"
    INTEGRATION = "integration"
    PRODUCTION = "production"


FEATURE_FLAGS: dict[Environment, dict[Feature, bool]] = {
    Environment.LOCAL: {
        Feature.FACILITIES: True,
        Feature.RESERVATIONS: True,
    },
    Environment.INTEGRATION: {
        Feature.FACILITIES: True,
        Feature.RESERVATIONS: True,
    },
    Environment.PRODUCTION: {
        Feature.FACILITIES: True,
        Feature.RESERVATIONS: True,
    },
}


def is_feature_enabled(
    feature: Feature,
    env_name: str | None,
    flags: dict[Environment, dict[Feature, bool]] = FEATURE_FLAGS,
) -> bool:
    """Unknown or missing environments have every feature switched off."""
    if not env_name:
        return False
    try:
        environment = Environment(env_name)
    except ValueError:
        return False
    return flags.get(environment, {}).get(feature, False)

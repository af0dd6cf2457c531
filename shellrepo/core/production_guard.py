"""Production configuration guard: enforces hard constraints in production.

The guard runs once when the coordinator is constructed and fails hard
(raises ``ProductionConfigError``) if any constraint is violated.

Identity is best-effort: a session whose sign-in fails runs under a locally
generated fallback identity. Whether such a session may write to the catalog
is decided by ``allow_degraded_publish``; production must turn it off so that
every record carries an identity issued by the auth provider.
"""

from __future__ import annotations

import logging

from shellrepo.config import RepoConfig

logger = logging.getLogger(__name__)


class ProductionConfigError(RuntimeError):
    """Raised when production configuration constraints are violated.

    The coordinator cannot safely start with the current configuration.
    """


def enforce_production_constraints(config: RepoConfig) -> None:
    """Validate production-critical configuration constraints.

    Constraints enforced
    --------------------
    1. Debug mode must be disabled.
    2. Publishing under a fallback identity must be disabled.

    Does nothing outside production.
    """
    if not config.is_production:
        return

    violations: list[str] = []
    if config.debug:
        violations.append("debug mode is enabled (SHELLREPO_DEBUG)")
    if config.allow_degraded_publish:
        violations.append(
            "publishing under a fallback identity is allowed "
            "(SHELLREPO_ALLOW_DEGRADED_PUBLISH)"
        )

    if violations:
        message = "Production constraints violated: " + "; ".join(violations)
        logger.error(message)
        raise ProductionConfigError(message)

    logger.info("Production constraints satisfied.")

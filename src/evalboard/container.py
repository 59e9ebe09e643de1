"""Dependency injection container for the evaluation dashboard."""

from __future__ import annotations

from typing import Any

from dependency_injector import containers, providers

from .auth import AuthSession, CredentialChecker
from .core import EvaluationSession, RankingEngine, RubricModel, ScoreAggregator
from .dashboard import Dashboard
from .identity import EvaluatorIdentity
from .schemas import Rubric
from .schemas.config import load_config
from .store import InMemoryRecordStore, JsonFileRecordStore, RecordStore


def _default_rubric(raw: dict[str, Any] | None) -> Rubric | None:
    return Rubric.model_validate(raw) if raw else None


class EvalboardContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    store = providers.Selector(
        config.store.backend,
        memory=providers.Singleton(InMemoryRecordStore),
        json=providers.Singleton(JsonFileRecordStore, path=config.store.path),
    )

    aggregator = providers.Singleton(
        ScoreAggregator,
        trim_quorum=config.aggregation.trim_quorum,
    )

    ranking_engine = providers.Singleton(RankingEngine, aggregator=aggregator)

    rubric_model = providers.Singleton(
        RubricModel,
        store=store,
        setting_key=config.rubric.setting_key,
        default=providers.Callable(_default_rubric, config.rubric.default),
    )

    dashboard = providers.Singleton(
        Dashboard,
        store=store,
        rubric_model=rubric_model,
        ranking_engine=ranking_engine,
    )

    identity = providers.Singleton(
        EvaluatorIdentity,
        token_path=config.evaluator.token_path,
        display_name=config.evaluator.display_name,
    )

    credentials = providers.Singleton(
        CredentialChecker,
        username=config.auth.username,
        password=config.auth.password,
    )

    auth_session = providers.Singleton(AuthSession, path=config.auth.session_path)

    session = providers.Factory(EvaluationSession, dashboard=dashboard)


def create_container(
    *,
    settings: dict | None = None,
    store: RecordStore | None = None,
) -> EvalboardContainer:
    """Instantiate the container from raw settings, filling in defaults.

    ``store`` replaces the configured backend, which tests use to inject a
    prepared or failing store.
    """

    app_config = load_config(settings or {})
    container = EvalboardContainer()
    container.config.from_dict(app_config.to_settings())

    if store is not None:
        container.store.override(providers.Object(store))

    return container

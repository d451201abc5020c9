from fastapi import Header, Request

from src.application.cards.use_cases.sync_card_list import SyncCardListUseCase
from src.application.execution.use_cases.execute_workflow import ExecuteWorkflowUseCase
from src.bootstrap import AppContainer
from src.ports.secondary.card_catalog import ICardCatalog
from src.ports.secondary.history_store import IHistoryStore
from src.ports.secondary.key_value_storage import IKeyValueStorage


def get_container(request: Request) -> AppContainer:
    return request.app.state.container


def get_history_store(request: Request) -> IHistoryStore:
    return get_container(request).history_store


def get_execute_workflow_use_case(request: Request) -> ExecuteWorkflowUseCase:
    return get_container(request).execute_workflow


def get_sync_card_list_use_case(request: Request) -> SyncCardListUseCase:
    return get_container(request).sync_card_list


def get_card_catalog(request: Request) -> ICardCatalog:
    return get_container(request).card_catalog


def get_storage(request: Request) -> IKeyValueStorage:
    return get_container(request).storage


def get_bearer_credential(authorization: str | None = Header(None)) -> str | None:
    """Optional caller credential. Falls back to the configured token when absent."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()

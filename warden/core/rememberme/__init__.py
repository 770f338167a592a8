"""Remember-me authentication: token mechanisms, stores, filter and configurator."""

from warden.core.rememberme.configurator import RememberMeConfigurator
from warden.core.rememberme.filter import RememberMeAuthenticationFilter
from warden.core.rememberme.persistent import PersistentTokenBasedRememberMeServices
from warden.core.rememberme.services import (
    AbstractRememberMeServices,
    NullRememberMeServices,
    RememberMeServices,
)
from warden.core.rememberme.token_based import TokenBasedRememberMeServices
from warden.core.rememberme.token_store import (
    InMemoryTokenStore,
    PersistentRememberMeToken,
    PersistentTokenStore,
    SqlAlchemyTokenStore,
    TokenStoreError,
)

__all__ = [
    "RememberMeConfigurator",
    "RememberMeAuthenticationFilter",
    "RememberMeServices",
    "AbstractRememberMeServices",
    "NullRememberMeServices",
    "TokenBasedRememberMeServices",
    "PersistentTokenBasedRememberMeServices",
    "PersistentRememberMeToken",
    "PersistentTokenStore",
    "InMemoryTokenStore",
    "SqlAlchemyTokenStore",
    "TokenStoreError",
]

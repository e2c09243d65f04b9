"""
Scoped, structured log context:
- Typed payloads merged into one key/value object (later scopes win on conflict)
- Hierarchical namespaces
- Scope carriers propagated through contextvars (threads/tasks/executors)
- Logging entry points that pick up the ambient scope automatically
"""

from .contexts import AnyLogContext, LogContexts, flatten_for_verbosity, lift_payload  # noqa: F401
from .config import Settings, apply_log_level, default_log_env, get_settings  # noqa: F401
from .errors import ConfigurationError, PayloadSerializationError, ScopelogError  # noqa: F401
from .filters import AmbientContextFilter, install_ambient_context_filter  # noqa: F401
from .location import Loc, get_loc  # noqa: F401
from .log_env import LogEnv, StdlibLogEnv  # noqa: F401
from .logger import log_exception, log_f, log_guarding_exceptions, log_item, log_loc  # noqa: F401
from .namespace import Namespace  # noqa: F401
from .payload import (  # noqa: F401
    AllKeys,
    LogItem,
    ModelPayload,
    PayloadSelection,
    SimplePayload,
    SomeKeys,
    payload_object,
    sl,
)
from .scope import (  # noqa: F401
    AMBIENT,
    AmbientContext,
    ScopeCarrier,
    add_context,
    add_namespace,
    bind_scope,
    current_carrier,
    get_context,
    get_log_env,
    get_namespace,
    run_scope,
    scoped,
    with_added_context,
    with_added_namespace,
)
from .severity import Severity, Verbosity, normalize_severity  # noqa: F401

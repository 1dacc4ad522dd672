from handlers.city import CityHandler
from handlers.keyword import EntityHandler, KeywordHandler
from handlers.number import NumberHandler
from handlers.registry import TypeHandlerRegistry
from handlers.repo import RepoNameHandler, RepoUrlHandler
from handlers.wildcard import WildcardHandler

BUILTIN_HANDLERS = (
    KeywordHandler,
    EntityHandler,
    CityHandler,
    NumberHandler,
    RepoNameHandler,
    RepoUrlHandler,
    WildcardHandler,
)


def build_default_registry() -> TypeHandlerRegistry:
    """Registry with every built-in type handler."""
    registry = TypeHandlerRegistry()
    for handler_cls in BUILTIN_HANDLERS:
        registry.register(handler_cls.type_name, handler_cls())
    return registry


__all__ = [
    "BUILTIN_HANDLERS",
    "CityHandler",
    "EntityHandler",
    "KeywordHandler",
    "NumberHandler",
    "RepoNameHandler",
    "RepoUrlHandler",
    "TypeHandlerRegistry",
    "WildcardHandler",
    "build_default_registry",
]

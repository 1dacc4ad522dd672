import asyncio
import logging
import re

import pytest

from conversation.gateway import ScriptedConversation
from handlers import build_default_registry
from handlers.base import BaseTypeHandler
from handlers.registry import TypeHandlerRegistry
from registry.schema_catalog import SchemaCatalog
from registry.supplier_registry import SupplierRegistry
from resolution.engine import ResolutionEngine
from shared.errors import ConfigurationError, ConversationError, ExternalServiceError
from shared.models import ParameterSlot
from shared.settings import ResolverSettings

DATABASES = ["AppTestDB", "AppProdDB", "AppDevDB"]


class DummyTagger:
    nouns = {"database", "details", "memry", "usage", "note", "issue", "alpa"}

    def tag(self, text):
        out = []
        for token in re.findall(r"[A-Za-z]+|\d+|[^\w\s]+", text):
            if token.isdigit():
                out.append((token, "CD"))
            elif token.lower() in self.nouns:
                out.append((token, "NN"))
            else:
                out.append((token, "VB"))
        return out


def _engine(replies=(), **kwargs):
    conversation = ScriptedConversation(replies)
    kwargs.setdefault("tagger", DummyTagger())
    engine = ResolutionEngine(conversation=conversation, **kwargs)
    return engine, conversation


def _database_slots(required=True):
    return [ParameterSlot(name="databasename", type="entity", values=DATABASES, required=required)]


def _resource_slot(**kwargs):
    return ParameterSlot(name="resource", type="keyword", values=["cpu", "memory", "disk"], **kwargs)


# ─── Phase 1 ───────────────────────────────────────────────────

class FirstWordHandler(BaseTypeHandler):
    """Resolves only once every earlier word has been stripped."""

    def __init__(self, target):
        self.target = target

    async def extract_value(self, statement, decoder, candidate_values):
        words = statement.split()
        return self.target if words and words[0] == self.target else None


def test_phase1_passes_bounded_by_slot_count():
    async def _run():
        registry = TypeHandlerRegistry()
        slots = []
        for word in ["c", "b", "a"]:
            registry.register(f"first_{word}", FirstWordHandler(word))
            slots.append(ParameterSlot(name=word, type=f"first_{word}"))

        engine, _ = _engine(handlers=registry)
        decoder = engine._decoder("a b c", "chain")
        values, passes = await engine._phase1("a b c", decoder, slots)

        assert values == {"a": "a", "b": "b", "c": "c"}
        assert passes == 3
        assert passes <= len(slots)

    asyncio.run(_run())


def test_phase1_stops_after_a_pass_without_progress():
    async def _run():
        engine, _ = _engine()
        slots = _database_slots() + [ParameterSlot(name="count", type="number")]
        decoder = engine._decoder("Get database details AppTestDB", "db")
        values, passes = await engine._phase1("Get database details AppTestDB", decoder, slots)

        assert values == {"databasename": "AppTestDB"}
        assert passes == 2

    asyncio.run(_run())


# ─── Full resolution ───────────────────────────────────────────

def test_literal_value_resolves_without_prompts():
    async def _run():
        engine, conversation = _engine()
        result = await engine.resolve("Get database details AppTestDB", "db", _database_slots())
        assert result == {"databasename": "AppTestDB"}
        assert conversation.prompts == []

    asyncio.run(_run())


def test_exit_leaves_required_slot_absent():
    async def _run():
        engine, conversation = _engine(["exit"])
        result = await engine.resolve("Get database details", "db", _database_slots())
        assert result == {}
        assert len(conversation.prompts) == 1
        assert "databasename" in conversation.prompts[0]

    asyncio.run(_run())


def test_optional_slot_without_match_is_not_prompted():
    async def _run():
        engine, conversation = _engine()
        result = await engine.resolve("Get database details", "db", _database_slots(required=False))
        assert result == {}
        assert conversation.prompts == []

    asyncio.run(_run())


def test_empty_schema_resolves_to_empty_map():
    async def _run():
        engine, conversation = _engine()
        assert await engine.resolve("anything at all", "nothing", []) == {}
        assert conversation.prompts == []

    asyncio.run(_run())


def test_two_slots_resolved_in_schema_order():
    async def _run():
        slots = [
            ParameterSlot(name="repouser", type="wildcard", title="repository owner"),
            ParameterSlot(name="reponame", type="reponame"),
        ]
        engine, conversation = _engine(["alice"])
        result = await engine.resolve("issue for alice/myrepo", "issue", slots)

        assert result == {"repouser": "alice", "reponame": "myrepo"}
        assert len(conversation.prompts) == 1
        assert "repository owner" in conversation.prompts[0]

    asyncio.run(_run())


def test_fuzzy_choice_by_index():
    async def _run():
        engine, conversation = _engine(["1"])
        result = await engine.resolve("show memry", "usage", [_resource_slot()])

        assert result == {"resource": "memory"}
        assert len(conversation.prompts) == 1
        assert "1) memory" in conversation.prompts[0]
        assert "2) none of these" in conversation.prompts[0]

    asyncio.run(_run())


def test_fuzzy_choice_by_literal_text():
    async def _run():
        engine, _ = _engine(["memory"])
        assert await engine.resolve("show memry", "usage", [_resource_slot()]) == {"resource": "memory"}

    asyncio.run(_run())


def test_fuzzy_none_falls_through_to_value_prompt():
    async def _run():
        engine, conversation = _engine(["none", "exit"])
        result = await engine.resolve("show memry", "usage", [_resource_slot()])

        assert result == {}
        assert len(conversation.prompts) == 2
        assert "resource" in conversation.prompts[1]

    asyncio.run(_run())


def test_fuzzy_none_index_then_single_word_reply():
    async def _run():
        engine, _ = _engine(["2", "disk"])
        assert await engine.resolve("show memry", "usage", [_resource_slot()]) == {"resource": "disk"}

    asyncio.run(_run())


def test_optional_keyword_still_offers_fuzzy_choices():
    async def _run():
        engine, conversation = _engine(["none"])
        result = await engine.resolve("show memry", "usage", [_resource_slot(required=False)])
        assert result == {}
        assert len(conversation.prompts) == 1

    asyncio.run(_run())


def test_multi_word_reply_is_decoded_again():
    async def _run():
        engine, conversation = _engine(["the memory one please"])
        result = await engine.resolve("show it", "usage", [_resource_slot()])
        assert result == {"resource": "memory"}
        assert len(conversation.prompts) == 1

    asyncio.run(_run())


def test_unparseable_reply_asks_for_just_the_value():
    async def _run():
        engine, conversation = _engine(["a few of them", "3"])
        result = await engine.resolve("scale the app", "scale", [ParameterSlot(name="count", type="number")])

        assert result == {"count": "3"}
        assert len(conversation.prompts) == 2
        assert "just the value" in conversation.prompts[1]

    asyncio.run(_run())


def test_final_prompt_accepts_exit():
    async def _run():
        engine, _ = _engine(["a few of them", "exit"])
        result = await engine.resolve("scale the app", "scale", [ParameterSlot(name="count", type="number")])
        assert result == {}

    asyncio.run(_run())


def test_wildcard_accepts_whole_reply():
    async def _run():
        engine, _ = _engine(["hello there, world"])
        slots = [ParameterSlot(name="message", type="wildcard")]
        assert await engine.resolve("post a note", "post", slots) == {"message": "hello there, world"}

    asyncio.run(_run())


def test_custom_prompt_is_used_for_first_ask():
    async def _run():
        engine, conversation = _engine(["exit"])
        slots = [ParameterSlot(name="message", type="wildcard", prompt="What should I post?")]
        await engine.resolve("post a note", "post", slots)
        assert conversation.prompts == ["What should I post?"]

    asyncio.run(_run())


def test_resolved_value_is_stripped_before_later_slots():
    async def _run():
        suppliers = SupplierRegistry()
        suppliers.register("dbs", lambda context, slot_name, values: ["db1", "db2"])
        slots = [
            ParameterSlot(name="source", type="entity", entityfunction="dbs"),
            ParameterSlot(name="target", type="entity", entityfunction="dbs"),
        ]
        engine, conversation = _engine(suppliers=suppliers)
        result = await engine.resolve("copy db1 to db2", "copy", slots)

        assert result == {"source": "db1", "target": "db2"}
        assert conversation.prompts == []

    asyncio.run(_run())


def test_phase1_slots_see_the_same_snapshot():
    async def _run():
        slots = [
            ParameterSlot(name="source", type="number"),
            ParameterSlot(name="target", type="number"),
        ]
        engine, _ = _engine()
        assert await engine.resolve("copy 7 items", "copy", slots) == {"source": "7", "target": "7"}

    asyncio.run(_run())


# ─── Value suppliers ───────────────────────────────────────────

def test_async_supplier_provides_authoritative_values():
    async def _run():
        seen = {}

        async def list_repos(context, slot_name, current_values):
            seen.update(context=context, slot=slot_name, values=current_values)
            return ["alpha-service", "beta-service"]

        suppliers = SupplierRegistry()
        suppliers.register("repos", list_repos)
        slots = [
            ParameterSlot(name="count", type="number"),
            ParameterSlot(name="service", type="entity", entityfunction="repos"),
        ]
        engine, conversation = _engine(suppliers=suppliers)
        result = await engine.resolve("restart beta-service 2", "restart", slots, context={"user": "bob"})

        assert result == {"count": "2", "service": "beta-service"}
        assert seen == {"context": {"user": "bob"}, "slot": "service", "values": {"count": "2"}}
        assert conversation.prompts == []

    asyncio.run(_run())


def test_supplier_list_makes_fuzzy_matching_feasible():
    async def _run():
        suppliers = SupplierRegistry()
        suppliers.register("services", lambda context, slot_name, values: ["alpha-service", "beta-service"])
        slots = [ParameterSlot(name="service", type="entity", entityfunction="services")]
        engine, conversation = _engine(["1"], suppliers=suppliers)

        result = await engine.resolve("restart the alpa service", "restart", slots)
        assert result == {"service": "alpha-service"}
        assert len(conversation.prompts) == 1
        assert "1) alpha-service" in conversation.prompts[0]

    asyncio.run(_run())


def test_single_candidate_used_directly_without_fuzzy():
    async def _run():
        slots = [ParameterSlot(name="service", type="entity", values=["alpha-service", "beta-service"])]
        engine, conversation = _engine()
        assert await engine.resolve("restart alpa", "restart", slots) == {"service": "alpa"}
        assert conversation.prompts == []

    asyncio.run(_run())


def test_unregistered_supplier_rejects_the_call():
    async def _run():
        slots = [ParameterSlot(name="service", type="entity", entityfunction="missing")]
        engine, _ = _engine()
        with pytest.raises(ConfigurationError):
            await engine.resolve("restart it", "restart", slots)

    asyncio.run(_run())


# ─── Failures ──────────────────────────────────────────────────

def test_unregistered_type_rejects_the_call():
    async def _run():
        engine, _ = _engine()
        with pytest.raises(ConfigurationError):
            await engine.resolve("anything", "x", [ParameterSlot(name="p", type="colour")])

    asyncio.run(_run())


class FailingHandler(BaseTypeHandler):
    async def extract_value(self, statement, decoder, candidate_values):
        raise ExternalServiceError("entity backend down")


def test_handler_failure_is_logged_and_propagated(caplog):
    async def _run():
        registry = build_default_registry()
        registry.register("broken", FailingHandler())
        engine, _ = _engine(handlers=registry)
        with pytest.raises(ExternalServiceError):
            await engine.resolve("anything", "x", [ParameterSlot(name="p", type="broken")])

    with caplog.at_level(logging.ERROR, logger="resolution.engine"):
        asyncio.run(_run())
    assert any("Resolution failed" in r.getMessage() for r in caplog.records)


def test_gateway_failure_propagates():
    async def _run():
        engine, _ = _engine([])
        with pytest.raises(ConversationError):
            await engine.resolve("Get database details", "db", _database_slots())

    asyncio.run(_run())


def test_missing_gateway_is_configuration_error():
    async def _run():
        engine = ResolutionEngine(tagger=DummyTagger())
        with pytest.raises(ConfigurationError):
            await engine.resolve("Get database details", "db", _database_slots())

    asyncio.run(_run())


# ─── Catalog, parsing-disabled mode, single slot ──────────────

def _catalog():
    catalog = SchemaCatalog()
    catalog.register_schema(
        {
            "name": "db",
            "seed_texts": ["Get database details"],
            "parameters": [
                {"name": "databasename", "type": "entity", "values": DATABASES},
                {"name": "limit", "type": "number", "required": False},
            ],
        }
    )
    return catalog


def test_slots_default_to_catalog_schema():
    async def _run():
        engine, _ = _engine(schema_catalog=_catalog())
        result = await engine.resolve("Get database details AppDevDB limit 5", "db")
        assert result == {"databasename": "AppDevDB", "limit": "5"}

    asyncio.run(_run())


def test_seed_nouns_suppress_generic_candidates():
    async def _run():
        slots = [ParameterSlot(name="databasename", type="entity", entityfunction="dbs")]
        suppliers = SupplierRegistry()
        suppliers.register("dbs", lambda context, slot_name, values: DATABASES)
        engine, conversation = _engine(["exit"], schema_catalog=_catalog(), suppliers=suppliers)

        result = await engine.resolve("Get database details", "db", slots)
        assert result == {}
        assert len(conversation.prompts) == 1
        assert "none of these" not in conversation.prompts[0]

    asyncio.run(_run())


def test_parsing_disabled_prompts_required_slots_only():
    async def _run():
        settings = ResolverSettings(entity_parsing_disabled=True)
        engine, conversation = _engine(["AppTestDB"], schema_catalog=_catalog(), settings=settings)

        result = await engine.resolve("Get database details AppProdDB", "db")
        assert result == {"databasename": "AppTestDB"}
        assert len(conversation.prompts) == 1

    asyncio.run(_run())


def test_resolve_parameter_fills_one_slot():
    async def _run():
        engine, conversation = _engine(schema_catalog=_catalog())
        current = {"databasename": "AppTestDB"}
        result = await engine.resolve_parameter(
            "AppTestDB limit 20", "db", "limit", current_values=current
        )

        assert result == {"databasename": "AppTestDB", "limit": "20"}
        assert current == {"databasename": "AppTestDB"}
        assert conversation.prompts == []

    asyncio.run(_run())


def test_resolve_parameter_unknown_slot():
    async def _run():
        engine, _ = _engine(schema_catalog=_catalog())
        with pytest.raises(ConfigurationError):
            await engine.resolve_parameter("anything", "db", "colour")

    asyncio.run(_run())


def test_resolve_parameter_with_parsing_disabled():
    async def _run():
        settings = ResolverSettings(entity_parsing_disabled=True)
        engine, conversation = _engine(["exit"], schema_catalog=_catalog(), settings=settings)
        result = await engine.resolve_parameter("AppDevDB", "db", "databasename")
        assert result == {}
        assert len(conversation.prompts) == 1

    asyncio.run(_run())

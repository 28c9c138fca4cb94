from kalito_llm.catalog import (
    OPENAI_MODELS,
    ApiMode,
    ChatMode,
    ResponsesMode,
    get_active_models,
    get_all_model_ids,
    get_model_config,
)


def test_lookup_by_id_and_alias_returns_same_config():
    assert get_model_config("gpt-4.1-nano") is OPENAI_MODELS["gpt-4.1-nano"]
    assert get_model_config("gpt-4-nano") is OPENAI_MODELS["gpt-4.1-nano"]
    assert get_model_config("gpt5-nano") is OPENAI_MODELS["gpt-5-nano"]
    assert get_model_config("nope") is None


def test_all_model_ids_include_aliases():
    ids = get_all_model_ids()
    assert "gpt-4.1-nano" in ids
    assert "gpt-4-nano" in ids
    assert len(ids) == len(set(ids))


def test_active_models_exclude_deprecated():
    active = get_active_models()
    assert "gpt-4.1-mini" not in active
    assert all(not c.deprecated for c in active.values())


def test_api_mode_is_a_tagged_variant():
    nano = OPENAI_MODELS["gpt-5-nano"]
    assert isinstance(nano.api, ChatMode)
    assert nano.api.uses_completion_token_param is True
    assert nano.api_mode is ApiMode.CHAT

    mini = OPENAI_MODELS["gpt-5-mini"]
    assert isinstance(mini.api, ResponsesMode)
    assert mini.api.default_reasoning_effort == "medium"
    assert mini.api_mode == "responses"


def test_gpt41_models_send_max_tokens():
    assert OPENAI_MODELS["gpt-4.1-nano"].api.uses_completion_token_param is False

import json
from types import SimpleNamespace

import pytest

from bloger.core.article import Category, ChartKind, TimeRange, WordCount
from bloger.core.errors import GenerationFailure, NoImageProduced, SuggestionParseFailure
from tests.fakes import (
    auth_error,
    citation_message,
    connection_error,
    image_response,
    make_article,
    text_response,
)


def article_json(**overrides):
    data = make_article().to_dict()
    data.update(overrides)
    return json.dumps(data, ensure_ascii=False)


@pytest.mark.asyncio
async def test_generate_article_parses_structured_output(generation_client, fake_openai):
    chart = {"title": "Sleep", "type": "bar", "data": [{"name": "Mon", "value": 7}]}
    fake_openai.responses.queue.append(text_response(article_json(chart=chart)))

    article = await generation_client.generate_article("mornings", Category.HEALTH, WordCount.SHORT)

    assert article.title == "Morning Routines That Work"
    assert article.chart.kind is ChartKind.BAR
    call = fake_openai.responses.calls[0]
    assert call["text"]["format"]["type"] == "json_schema"
    assert "imagePrompt" in call["text"]["format"]["schema"]["required"]
    assert "mornings" in call["input"] and "Health" in call["input"] and "500 words" in call["input"]


@pytest.mark.asyncio
async def test_generate_article_tolerates_code_fence(generation_client, fake_openai):
    fake_openai.responses.queue.append(text_response(f"```json\n{article_json()}\n```"))
    article = await generation_client.generate_article("mornings", Category.HEALTH, WordCount.SHORT)
    assert article.image_prompt == "A sunrise over a calm kitchen"


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [
    "",
    "I could not write that article.",
    json.dumps({"title": "No body", "introduction": "i", "conclusion": "c", "imagePrompt": "p"}),
    article_json()[:80],
    '{"title":' + "[" * 100000,
])
async def test_generate_article_bad_payload_is_generation_failure(generation_client, fake_openai, raw):
    fake_openai.responses.queue.append(text_response(raw))
    with pytest.raises(GenerationFailure) as exc_info:
        await generation_client.generate_article("mornings", Category.HEALTH, WordCount.SHORT)
    assert not exc_info.value.credential


@pytest.mark.asyncio
async def test_generate_article_transport_failure_is_not_retried(fake_openai):
    from bloger.services.generation import GenerationClient

    client = GenerationClient(client=fake_openai, timeout=5, retry_tries=3)
    fake_openai.responses.queue.extend([connection_error(), text_response(article_json())])

    with pytest.raises(GenerationFailure):
        await client.generate_article("mornings", Category.HEALTH, WordCount.SHORT)
    assert len(fake_openai.responses.calls) == 1


@pytest.mark.asyncio
async def test_credential_errors_are_flagged(generation_client, fake_openai):
    fake_openai.responses.queue.append(auth_error())
    with pytest.raises(GenerationFailure) as exc_info:
        await generation_client.generate_article("mornings", Category.HEALTH, WordCount.SHORT)
    assert exc_info.value.credential


@pytest.mark.asyncio
async def test_continue_article_sends_only_the_tail(generation_client, fake_openai):
    fake_openai.responses.queue.append(text_response("More text 🎉"))
    body = "x" * 600 + "TAIL"

    text = await generation_client.continue_article("Title", body)

    assert text == "More text 🎉"
    prompt = fake_openai.responses.calls[0]["input"]
    assert body[-500:] in prompt
    assert "x" * 501 not in prompt
    assert '"Title"' in prompt


@pytest.mark.asyncio
async def test_continue_article_empty_response_is_empty_string(generation_client, fake_openai):
    fake_openai.responses.queue.append(SimpleNamespace(output_text=None, output=[]))
    assert await generation_client.continue_article("Title", "body") == ""


@pytest.mark.asyncio
async def test_continue_article_transport_failure(generation_client, fake_openai):
    fake_openai.responses.queue.append(connection_error())
    with pytest.raises(GenerationFailure):
        await generation_client.continue_article("Title", "body")


@pytest.mark.asyncio
async def test_generate_image_returns_first_image_part(generation_client, fake_openai):
    fake_openai.responses.queue.append(image_response(
        SimpleNamespace(type="reasoning", summary=[]),
        SimpleNamespace(type="image_generation_call", result=None),
        SimpleNamespace(type="image_generation_call", result="QUJD"),
        SimpleNamespace(type="image_generation_call", result="REVG"),
    ))

    url = await generation_client.generate_image("A sunrise")

    assert url == "data:image/png;base64,QUJD"
    tool = fake_openai.responses.calls[0]["tools"][0]
    assert tool["type"] == "image_generation"
    assert tool["size"] == "1536x1024"


@pytest.mark.asyncio
async def test_generate_image_without_image_part(generation_client, fake_openai):
    fake_openai.responses.queue.append(image_response(citation_message("I can't draw that.", [])))
    with pytest.raises(NoImageProduced):
        await generation_client.generate_image("A sunrise")


@pytest.mark.asyncio
async def test_generate_image_transport_failure(generation_client, fake_openai):
    fake_openai.responses.queue.append(connection_error())
    with pytest.raises(GenerationFailure):
        await generation_client.generate_image("A sunrise")


@pytest.mark.asyncio
async def test_suggest_topics_extracts_array_and_sources(generation_client, fake_openai):
    raw = 'Here are some ideas:\n[{"title":"X","description":"Y"}]\nHope this helps!'
    message = citation_message(raw, [("News", "https://news.example/a"), ("", "https://blog.example/b")])
    fake_openai.responses.queue.append(text_response(raw, output=[message]))

    result = await generation_client.suggest_topics(Category.FINANCE, TimeRange.WEEK)

    assert [(t.title, t.description) for t in result.topics] == [("X", "Y")]
    assert [(s.title, s.uri) for s in result.sources] == [
        ("News", "https://news.example/a"),
        ("Source", "https://blog.example/b"),
    ]
    assert result.failure is None
    call = fake_openai.responses.calls[0]
    assert call["tools"] == [{"type": "web_search"}]
    assert "last 7 days" in call["input"] and "Finance" in call["input"]


@pytest.mark.asyncio
async def test_suggest_topics_unparseable_reports_failure(generation_client, fake_openai):
    fake_openai.responses.queue.append(text_response("Trends are hard to pin down this week."))

    result = await generation_client.suggest_topics(Category.FINANCE, TimeRange.WEEK)

    assert result.topics == []
    assert isinstance(result.failure, SuggestionParseFailure)


@pytest.mark.asyncio
async def test_suggest_topics_deeply_nested_response_reports_failure(generation_client, fake_openai):
    fake_openai.responses.queue.append(text_response('[{"title": ' + "[" * 100000))

    result = await generation_client.suggest_topics(Category.FINANCE, TimeRange.WEEK)

    assert result.topics == []
    assert isinstance(result.failure, SuggestionParseFailure)


@pytest.mark.asyncio
async def test_suggest_topics_filters_incomplete_entries(generation_client, fake_openai):
    raw = json.dumps([
        {"title": "Good", "description": "Complete"},
        {"title": "", "description": "No title"},
        {"description": "Missing title"},
        {"title": "No description"},
        "just a string",
    ])
    fake_openai.responses.queue.append(text_response(raw))

    result = await generation_client.suggest_topics(Category.FINANCE, TimeRange.WEEK)

    assert [t.title for t in result.topics] == ["Good"]
    assert result.failure is None


@pytest.mark.asyncio
async def test_suggest_topics_all_entries_invalid_is_failure(generation_client, fake_openai):
    fake_openai.responses.queue.append(text_response('[{"name": "wrong shape"}]'))
    result = await generation_client.suggest_topics(Category.FINANCE, TimeRange.WEEK)
    assert result.topics == []
    assert isinstance(result.failure, SuggestionParseFailure)


@pytest.mark.asyncio
async def test_suggest_topics_falls_back_without_search(generation_client, fake_openai):
    fake_openai.responses.queue.extend([
        connection_error(),
        text_response('[{"title": "Evergreen", "description": "Always relevant"}]'),
    ])

    result = await generation_client.suggest_topics(Category.FINANCE, TimeRange.MONTH)

    assert [t.title for t in result.topics] == ["Evergreen"]
    assert result.sources == []
    fallback_call = fake_openai.responses.calls[1]
    assert "tools" not in fallback_call
    assert "evergreen" in fallback_call["input"]


@pytest.mark.asyncio
async def test_suggest_topics_fallback_failure_is_terminal(generation_client, fake_openai):
    fake_openai.responses.queue.extend([connection_error(), auth_error()])

    with pytest.raises(GenerationFailure) as exc_info:
        await generation_client.suggest_topics(Category.FINANCE, TimeRange.MONTH)
    assert exc_info.value.credential
    assert len(fake_openai.responses.calls) == 2

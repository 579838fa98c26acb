"""Tests for GenerateSummaryUseCase: uses FakeLLMClient, NOT @patch("openai...")."""

from __future__ import annotations

import json

import pytest

from meeting_scribe.l1_entities.errors import (
    AuthError,
    InputValidationError,
    RetryExhaustedError,
    SummaryFailedError,
    http_error,
)
from meeting_scribe.l1_entities.retry_policy import RetryPolicy
from meeting_scribe.l1_entities.transcript import TextSpan, Transcript
from meeting_scribe.l2_use_cases.summary_use_case import GenerateSummaryUseCase, extract_json_object
from tests.conftest import FakeLLMClient

VALID_SUMMARY = {
    'keyPoints': ['Budget approved', 'Hiring freeze lifted'],
    'actionItems': [{'task': 'Draft plan', 'assignee': 'Ann', 'dueDate': '2026-03-09', 'remarks': ''}],
    'risks': [{'type': 'Risk', 'category': 'Schedule', 'item': 'Vendor delay', 'remarks': ''}],
    'nextMeetingPlan': {'meetingName': 'Weekly', 'scheduledDate': '2026-03-09', 'scheduledTime': '10:00 AM'},
    'meetingContext': {'meetingName': 'Weekly', 'meetingDate': '2026-03-02', 'participants': ['Ann', 'Bo']},
}


@pytest.fixture
def transcript() -> Transcript:
    spans = [
        TextSpan(text='Budget is approved.', relative_timestamp=0, absolute_start=0),
        TextSpan(text='Ann drafts the plan.', relative_timestamp=5, absolute_start=5),
    ]
    return Transcript(title='weekly (Direct Transcription)', spans=spans, word_count=7, segment_count=1)


class TestExtractJsonObject:
    def test_plain(self):
        assert extract_json_object('{"a": 1}') == {'a': 1}

    def test_fenced(self):
        assert extract_json_object('Here you go:\n```json\n{"a": 1}\n```\nThanks') == {'a': 1}

    def test_surrounding_chatter(self):
        assert extract_json_object('Sure! {"a": {"b": 2}} Hope this helps.') == {'a': {'b': 2}}

    def test_no_object(self):
        with pytest.raises(ValueError, match='no JSON object'):
            extract_json_object('I cannot help with that.')


class TestGenerateSummary:
    @pytest.mark.asyncio
    async def test_success(self, transcript, instant_executor):
        llm = FakeLLMClient(response=json.dumps(VALID_SUMMARY), prompt_tokens=300)
        uc = GenerateSummaryUseCase(llm, RetryPolicy(), instant_executor)

        summary = await uc.execute(transcript, 'test-model', meeting_date='2026-03-02')

        assert summary.key_points == ['Budget approved', 'Hiring freeze lifted']
        assert summary.action_items[0].assignee == 'Ann'
        assert summary.meeting_context.participants == ['Ann', 'Bo']
        model, messages = llm.chat_calls[0]
        assert model == 'test-model'
        assert [m.role for m in messages] == ['system', 'user']
        assert 'Speaker_1: Budget is approved.' in messages[1].content
        assert '2026-03-02' in messages[1].content

    @pytest.mark.asyncio
    async def test_fills_missing_context(self, transcript, instant_executor):
        llm = FakeLLMClient(response='```\n{"keyPoints": ["x"]}\n```')
        summary = await GenerateSummaryUseCase(llm, executor=instant_executor).execute(
            transcript, 'm', meeting_date='2026-03-02'
        )
        assert summary.meeting_context.meeting_name == 'weekly (Direct Transcription)'
        assert summary.meeting_context.meeting_date == '2026-03-02'

    @pytest.mark.asyncio
    async def test_empty_transcript_rejected(self, instant_executor):
        llm = FakeLLMClient()
        with pytest.raises(InputValidationError, match='Empty transcript'):
            await GenerateSummaryUseCase(llm, executor=instant_executor).execute(Transcript(), 'm')
        assert llm.chat_calls == []

    @pytest.mark.asyncio
    async def test_unparseable_response(self, transcript, instant_executor):
        llm = FakeLLMClient(response='Sorry, I cannot summarize this.')
        with pytest.raises(SummaryFailedError):
            await GenerateSummaryUseCase(llm, executor=instant_executor).execute(transcript, 'm')

    @pytest.mark.asyncio
    async def test_schema_violation(self, transcript, instant_executor):
        llm = FakeLLMClient(response='{"risks": [{"type": "Maybe", "item": "x"}]}')
        with pytest.raises(SummaryFailedError, match='Failed to parse'):
            await GenerateSummaryUseCase(llm, executor=instant_executor).execute(transcript, 'm')

    @pytest.mark.asyncio
    async def test_empty_response(self, transcript, instant_executor):
        llm = FakeLLMClient(response='   ')
        with pytest.raises(SummaryFailedError, match='Empty response'):
            await GenerateSummaryUseCase(llm, executor=instant_executor).execute(transcript, 'm')

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self, transcript, instant_executor):
        llm = FakeLLMClient(response=json.dumps(VALID_SUMMARY), errors=[http_error(503), http_error(429)])
        retries: list[int] = []
        summary = await GenerateSummaryUseCase(llm, RetryPolicy(max_retries=2), instant_executor).execute(
            transcript, 'm', on_retry=lambda attempt, delay, e: retries.append(attempt)
        )
        assert retries == [1, 2]
        assert len(llm.chat_calls) == 3
        assert summary.key_points

    @pytest.mark.asyncio
    async def test_gives_up_after_policy(self, transcript, instant_executor):
        llm = FakeLLMClient(errors=[http_error(500)] * 3)
        with pytest.raises(RetryExhaustedError):
            await GenerateSummaryUseCase(llm, RetryPolicy(max_retries=2), instant_executor).execute(transcript, 'm')

    @pytest.mark.asyncio
    async def test_auth_error_not_retried(self, transcript, instant_executor):
        llm = FakeLLMClient(errors=[http_error(401)])
        with pytest.raises(AuthError):
            await GenerateSummaryUseCase(llm, executor=instant_executor).execute(transcript, 'm')
        assert len(llm.chat_calls) == 1

"""Use case: generate a structured meeting summary from a stitched transcript."""

from __future__ import annotations

import json
import logging
import re
from datetime import date

from pydantic import ValidationError

from meeting_scribe.l1_entities.chat_message import ChatMessage
from meeting_scribe.l1_entities.errors import InputValidationError, SummaryFailedError
from meeting_scribe.l1_entities.retry_policy import RetryPolicy
from meeting_scribe.l1_entities.summary import MeetingSummary
from meeting_scribe.l1_entities.transcript import Transcript
from meeting_scribe.l2_use_cases.ports.llm_client import LLMClient
from meeting_scribe.l2_use_cases.utils.prompt_builder import SUMMARY_SYSTEM_PROMPT, build_summary_prompt
from meeting_scribe.l2_use_cases.utils.retry import CountdownCallback, RetryCallback, RetryExecutor

log = logging.getLogger('msc.llm')

SUMMARY_RETRY_POLICY = RetryPolicy(max_retries=2, base_delay=1.0, max_delay=20.0)

_FENCE_RE = re.compile(r'```(?:json)?\s*(.*?)```', re.DOTALL)


def extract_json_object(raw: str) -> dict:
    """Pull the JSON object out of an LLM reply, tolerating code fences and chatter."""
    fenced = _FENCE_RE.search(raw)
    text = fenced.group(1) if fenced else raw
    start, end = text.find('{'), text.rfind('}')
    if start == -1 or end <= start:
        raise ValueError('no JSON object in response')
    data = json.loads(text[start : end + 1])
    if not isinstance(data, dict):
        raise ValueError('response JSON is not an object')
    return data


class GenerateSummaryUseCase:
    """One summary request per transcript, retried with its own policy."""

    def __init__(
        self,
        llm_client: LLMClient,
        policy: RetryPolicy = SUMMARY_RETRY_POLICY,
        executor: RetryExecutor | None = None,
    ) -> None:
        self._llm = llm_client
        self._policy = policy
        self._executor = executor or RetryExecutor()

    async def execute(
        self,
        transcript: Transcript,
        model: str,
        *,
        meeting_date: str | None = None,
        on_retry: RetryCallback | None = None,
        on_countdown: CountdownCallback | None = None,
    ) -> MeetingSummary:
        if not transcript.spans or not transcript.text.strip():
            raise InputValidationError('Empty transcript - cannot generate summary')

        meeting_date = meeting_date or date.today().isoformat()
        messages = [
            ChatMessage(role='system', content=SUMMARY_SYSTEM_PROMPT),
            ChatMessage(role='user', content=build_summary_prompt(transcript, meeting_date)),
        ]
        log.info('Summary request: %d spans, %d words, model=%s', len(transcript.spans), transcript.word_count, model)

        resp = await self._executor.execute(
            lambda: self._llm.chat(model=model, messages=messages),
            self._policy,
            on_retry=on_retry,
            on_countdown=on_countdown,
        )
        raw = resp.content
        log.debug('LLM raw response (%d chars): %s', len(raw), raw[:500])
        if not raw.strip():
            raise SummaryFailedError('Empty response from LLM')

        try:
            summary = MeetingSummary.model_validate(extract_json_object(raw))
        except (ValueError, ValidationError) as e:
            log.error('Unparseable summary response: %s', e)
            raise SummaryFailedError(f'Failed to parse summary response: {e}') from e

        if not summary.meeting_context.meeting_name:
            summary.meeting_context.meeting_name = transcript.title
        if not summary.meeting_context.meeting_date:
            summary.meeting_context.meeting_date = meeting_date
        log.info(
            'Summary succeeded: %d key points, %d action items, %d risks (prompt_tokens=%d)',
            len(summary.key_points),
            len(summary.action_items),
            len(summary.risks),
            resp.prompt_tokens,
        )
        return summary

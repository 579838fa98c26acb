"""Pure functions for building the summary prompt and rendering its result."""

from __future__ import annotations

from meeting_scribe.l1_entities.summary import MeetingSummary
from meeting_scribe.l1_entities.transcript import Transcript

SUMMARY_SYSTEM_PROMPT = (
    'You are an expert meeting analyst. Analyze meeting transcripts and provide '
    'structured summaries in the exact JSON format requested.'
)

_SUMMARY_SCHEMA = """\
{{
  "keyPoints": ["point1", "point2", ...],
  "actionItems": [
    {{"task": "task description", "assignee": "person responsible", "dueDate": "YYYY-MM-DD", "remarks": "optional remarks"}}
  ],
  "risks": [
    {{"type": "Risk" or "Issue", "category": "category name", "item": "description", "remarks": "optional remarks"}}
  ],
  "nextMeetingPlan": {{
    "meetingName": "name", "scheduledDate": "YYYY-MM-DD", "scheduledTime": "HH:MM AM/PM", "agenda": "agenda description"
  }},
  "meetingContext": {{
    "meetingName": "{meeting_name}", "meetingDate": "{meeting_date}", "participants": ["participant1", ...]
  }}
}}"""


def transcript_to_text(transcript: Transcript, speaker: str = 'Speaker_1') -> str:
    """Render spans one per line, prefixed by the (single) speaker id."""
    return '\n'.join(f'{speaker}: {span.text}' for span in transcript.spans)


def build_summary_prompt(transcript: Transcript, meeting_date: str) -> str:
    schema = _SUMMARY_SCHEMA.format(meeting_name=transcript.title, meeting_date=meeting_date)
    return (
        'Please analyze the following meeting transcript and provide a structured summary '
        f'in JSON format with the following structure:\n\n{schema}\n\n'
        f'Transcript:\n{transcript_to_text(transcript)}'
    )


def render_summary_markdown(summary: MeetingSummary) -> str:
    ctx = summary.meeting_context
    lines = [f'# {ctx.meeting_name or "Meeting summary"}', '']
    if ctx.meeting_date:
        lines.append(f'**Date:** {ctx.meeting_date}')
    if ctx.participants:
        lines.append(f'**Participants:** {", ".join(ctx.participants)}')
    lines += ['', '## Key points']
    lines += [f'- {p}' for p in summary.key_points] or ['(none)']

    lines += ['', '## Action items']
    if summary.action_items:
        for item in summary.action_items:
            owner = f' ({item.assignee})' if item.assignee else ''
            due = f', due {item.due_date}' if item.due_date else ''
            note = f' - {item.remarks}' if item.remarks else ''
            lines.append(f'- [ ] {item.task}{owner}{due}{note}')
    else:
        lines.append('(none)')

    lines += ['', '## Risks and issues']
    if summary.risks:
        for risk in summary.risks:
            category = f' [{risk.category}]' if risk.category else ''
            lines.append(f'- **{risk.type}**{category}: {risk.item}')
    else:
        lines.append('(none)')

    plan = summary.next_meeting_plan
    if plan.meeting_name or plan.scheduled_date or plan.agenda:
        lines += ['', '## Next meeting']
        when = ' '.join(part for part in (plan.scheduled_date, plan.scheduled_time) if part)
        lines.append(f'{plan.meeting_name or "Follow-up"}{f" - {when}" if when else ""}')
        if plan.agenda:
            lines.append(f'Agenda: {plan.agenda}')
    return '\n'.join(lines) + '\n'

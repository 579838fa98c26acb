"""Meeting summary entities."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class MeetingContext(BaseModel):
    meeting_name: str = Field(default='', alias='meetingName')
    meeting_date: str = Field(default='', alias='meetingDate')
    participants: list[str] = Field(default_factory=list)

    model_config = {'populate_by_name': True}


class ActionItem(BaseModel):
    task: str
    assignee: str = ''
    due_date: str = Field(default='', alias='dueDate')
    remarks: str = ''

    model_config = {'populate_by_name': True}


class RiskItem(BaseModel):
    type: Literal['Risk', 'Issue'] = 'Risk'
    category: str = ''
    item: str
    remarks: str = ''


class NextMeetingPlan(BaseModel):
    meeting_name: str = Field(default='', alias='meetingName')
    scheduled_date: str = Field(default='', alias='scheduledDate')
    scheduled_time: str = Field(default='', alias='scheduledTime')
    agenda: str = ''

    model_config = {'populate_by_name': True}


class MeetingSummary(BaseModel):
    """Structured summary produced from a stitched transcript."""

    meeting_context: MeetingContext = Field(default_factory=MeetingContext, alias='meetingContext')
    key_points: list[str] = Field(default_factory=list, alias='keyPoints')
    action_items: list[ActionItem] = Field(default_factory=list, alias='actionItems')
    risks: list[RiskItem] = Field(default_factory=list)
    next_meeting_plan: NextMeetingPlan = Field(default_factory=NextMeetingPlan, alias='nextMeetingPlan')

    model_config = {'populate_by_name': True}

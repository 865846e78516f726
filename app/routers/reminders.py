from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List

from app.core.auth import get_current_principal
from app.core.database import get_db
from app.core.principal import Principal
from app.schemas.reminder import ReminderItem, DismissRequest, SnoozeRequest, ReminderActionResponse
from app.services import reminder_service

router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("", response_model=List[ReminderItem])
def list_reminders(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    return reminder_service.list_reminders(db, principal)


@router.post("/dismiss", response_model=ReminderActionResponse)
def dismiss(
    body: DismissRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    reminder_service.dismiss_reminder(db, principal, body.task_id)
    return {"message": "Reminder dismissed"}


@router.post("/snooze", response_model=ReminderActionResponse)
def snooze(
    body: SnoozeRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_principal)
):
    hours = reminder_service.effective_snooze_hours(body.snooze_hours)
    overlay = reminder_service.snooze_reminder(db, principal, body.task_id, hours)
    return {"message": f"Reminder snoozed for {hours} hours", "snooze_until": overlay.snooze_until}

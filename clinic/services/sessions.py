"""
Teleconsultation session records.

Sessions are write-once: there is no update or delete path. The patient
listing returns every stored session; it is not filtered by the patient
id it is given.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from clinic.models import LiveSession
from clinic.services.audit import log_action
from clinic.services.common import persisting

logger = logging.getLogger(__name__)


def create_session(*, session_name: str, session_url: str, doctor_id: str,
                   doctor_name: str = '', doctor_email: str = '',
                   actor_id: Optional[str] = None) -> LiveSession:
    with persisting('creating live session'):
        session = LiveSession.objects.create(
            session_name=session_name,
            session_url=session_url,
            doctor_id=doctor_id,
            doctor_name=doctor_name or '',
            doctor_email=doctor_email or '',
        )
    log_action(actor_id=actor_id, action='live_session_created', object_type='live_session',
               object_id=session.pk, detail={'doctorId': doctor_id})
    return session


def list_for_doctor(doctor_id: str) -> List[LiveSession]:
    with persisting('listing doctor sessions'):
        return list(LiveSession.objects.filter(doctor_id=doctor_id).order_by('-created_at', '-id'))


def list_for_patient(patient_id: str) -> List[LiveSession]:
    # TODO: filter by patient once sessions record their invited patient
    logger.debug("listing all sessions for patient %s", patient_id)
    with persisting('listing patient sessions'):
        return list(LiveSession.objects.order_by('-created_at', '-id'))

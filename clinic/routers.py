"""
URL mappings for the CareLink backend.

API routes live under ``/api/``; the remaining paths are the gated page
endpoints the web front end navigates between. Trailing slashes are
omitted throughout.
"""
from django.urls import path, include

from clinic.access import dashboard_for
from .views import health, pages
from .views.users import create_profile, me, doctors, users_by_role
from .views.webhooks import identity_webhook
from .views.live_sessions import create_session, doctor_sessions, patient_sessions
from .views.appointments import (
    appointments,
    appointment_detail,
    request_appointment,
    requested_for_doctor,
    approve_appointment,
    reject_appointment,
    cancel_appointment,
    confirm_appointment,
    complete_appointment,
    appointments_for_patient,
    appointments_for_doctor,
    doctor_availability,
    appointment_stats,
    pending_reminders,
    mark_reminder_sent,
)
from .views.vitals import vitals, vital_detail, vitals_for_patient, latest_vitals, vitals_stats
from .views.documents import (
    documents,
    upload_document,
    document_detail,
    documents_for_patient,
    documents_by_uploader,
    document_stats,
)
from .views.notifications import (
    notifications,
    notification_detail,
    mark_read,
    notifications_for_recipient,
    unread_count,
    mark_all_read,
    bulk_notifications,
    clear_read,
    notification_stats,
)
from .views.prescriptions import (
    prescriptions,
    prescription_detail,
    complete_prescription,
    prescriptions_for_patient,
    active_for_patient,
    prescriptions_for_doctor,
    prescription_stats,
)
from .views.patients import (
    patients,
    patient_detail,
    autosave_patient,
    add_allergy,
    add_chronic_condition,
    add_surgery,
    update_family_history,
    patients_for_doctor,
    patient_stats,
    comprehensive_patient,
)

urlpatterns = [
    path('metrics', include('django_prometheus.urls')),
    path('healthz', health.healthz),

    # Users
    path('api/users/create-profile', create_profile),
    path('api/users/me', me),
    path('api/users/doctors', doctors),
    path('api/users/by-role/<str:role>', users_by_role),

    # Identity provider webhook
    path('api/webhooks/identity', identity_webhook),

    # Teleconsultation
    path('api/live-sessions', create_session),
    path('api/live-sessions/doctor', doctor_sessions),
    path('api/live-sessions/patient', patient_sessions),

    # Appointments
    path('api/appointments', appointments),
    path('api/appointments/request', request_appointment),
    path('api/appointments/stats/overview', appointment_stats),
    path('api/appointments/reminders/pending', pending_reminders),
    path('api/appointments/requests/doctor/<str:doctor_id>', requested_for_doctor),
    path('api/appointments/patient/<str:patient_id>', appointments_for_patient),
    path('api/appointments/doctor/<str:doctor_id>', appointments_for_doctor),
    path('api/appointments/availability/<str:doctor_id>', doctor_availability),
    path('api/appointments/<int:pk>', appointment_detail),
    path('api/appointments/<int:pk>/approve', approve_appointment),
    path('api/appointments/<int:pk>/reject', reject_appointment),
    path('api/appointments/<int:pk>/cancel', cancel_appointment),
    path('api/appointments/<int:pk>/confirm', confirm_appointment),
    path('api/appointments/<int:pk>/complete', complete_appointment),
    path('api/appointments/<int:pk>/reminder', mark_reminder_sent),

    # Physical vitals
    path('api/vitals', vitals),
    path('api/vitals/patient/<str:patient_id>', vitals_for_patient),
    path('api/vitals/patient/<str:patient_id>/latest', latest_vitals),
    path('api/vitals/patient/<str:patient_id>/stats', vitals_stats),
    path('api/vitals/<int:pk>', vital_detail),

    # Medical documents
    path('api/documents', documents),
    path('api/documents/upload', upload_document),
    path('api/documents/stats/overview', document_stats),
    path('api/documents/patient/<str:patient_id>', documents_for_patient),
    path('api/documents/uploader/<str:uploader_id>', documents_by_uploader),
    path('api/documents/<int:pk>', document_detail),

    # Notifications
    path('api/notifications', notifications),
    path('api/notifications/bulk', bulk_notifications),
    path('api/notifications/stats/overview', notification_stats),
    path('api/notifications/recipient/<str:recipient_id>', notifications_for_recipient),
    path('api/notifications/recipient/<str:recipient_id>/unread-count', unread_count),
    path('api/notifications/recipient/<str:recipient_id>/read-all', mark_all_read),
    path('api/notifications/recipient/<str:recipient_id>/clear-read', clear_read),
    path('api/notifications/<int:pk>', notification_detail),
    path('api/notifications/<int:pk>/read', mark_read),

    # Prescriptions
    path('api/prescriptions', prescriptions),
    path('api/prescriptions/stats/overview', prescription_stats),
    path('api/prescriptions/patient/<str:patient_id>', prescriptions_for_patient),
    path('api/prescriptions/patient/<str:patient_id>/active', active_for_patient),
    path('api/prescriptions/doctor/<str:doctor_id>', prescriptions_for_doctor),
    path('api/prescriptions/<int:pk>', prescription_detail),
    path('api/prescriptions/<int:pk>/complete', complete_prescription),

    # Patient intake records
    path('api/patients', patients),
    path('api/patients/stats/overview', patient_stats),
    path('api/patients/doctor/<str:doctor_id>', patients_for_doctor),
    path('api/patients/<str:ref>', patient_detail),
    path('api/patients/<str:ref>/comprehensive', comprehensive_patient),
    path('api/patients/<str:ref>/autosave', autosave_patient),
    path('api/patients/<str:ref>/allergies', add_allergy),
    path('api/patients/<str:ref>/chronic-conditions', add_chronic_condition),
    path('api/patients/<str:ref>/surgeries', add_surgery),
    path('api/patients/<str:ref>/family-history', update_family_history),

    # Pages
    path('auth/callback', pages.auth_callback),
    path('complete-profile', pages.complete_profile_page),
    path('unauthorized', pages.unauthorized),
    path('analytics', pages.analytics),
] + [
    path(dashboard_for(role).lstrip('/'), view)
    for role, view in pages.DASHBOARD_VIEWS.items()
]

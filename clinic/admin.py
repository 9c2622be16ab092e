"""Django admin registrations for the clinic models."""

from django.contrib import admin

from .models import (
    UserProfile,
    PatientRecord,
    LiveSession,
    Appointment,
    PhysicalVital,
    MedicalDocument,
    Notification,
    Prescription,
    AuditEvent,
)


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ('external_id', 'email', 'name', 'role', 'is_active', 'last_login')
    list_filter = ('role', 'is_active', 'gender')
    search_fields = ('external_id', 'email', 'name', 'phone')


@admin.register(PatientRecord)
class PatientRecordAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'patient_id', 'primary_doctor_id', 'blood_group', 'is_active')
    list_filter = ('is_active', 'gender', 'blood_group')
    search_fields = ('name', 'patient_id', 'emergency_contact_phone')


@admin.register(LiveSession)
class LiveSessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'session_name', 'doctor_id', 'doctor_name', 'created_at')
    search_fields = ('session_name', 'doctor_id', 'doctor_email')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient_id', 'doctor_id', 'status', 'appointment_type', 'start_time')
    list_filter = ('status', 'appointment_type', 'reminder_sent_24h')
    search_fields = ('patient_id', 'doctor_id', 'reason')


@admin.register(PhysicalVital)
class PhysicalVitalAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient_id', 'recorded_by', 'recorded_at', 'measurement_method')
    list_filter = ('measurement_method',)
    search_fields = ('patient_id', 'recorded_by')


@admin.register(MedicalDocument)
class MedicalDocumentAdmin(admin.ModelAdmin):
    list_display = ('id', 'file_name', 'patient_id', 'document_type', 'category', 'is_deleted')
    list_filter = ('document_type', 'category', 'is_deleted')
    search_fields = ('file_name', 'patient_id', 'uploaded_by')


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('id', 'recipient_id', 'notification_type', 'title', 'is_read', 'sent_at')
    list_filter = ('notification_type', 'is_read')
    search_fields = ('recipient_id', 'patient_id', 'title')


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient_id', 'doctor_id', 'medication_name', 'is_active', 'created_at')
    list_filter = ('is_active',)
    search_fields = ('patient_id', 'doctor_id', 'medication_name')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('created_at', 'actor_id', 'action', 'object_type', 'object_id')
    list_filter = ('action', 'object_type')
    search_fields = ('actor_id', 'object_id')

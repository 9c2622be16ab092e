"""
Database models for the CareLink backend.

Profiles are keyed by the identity provider's user id. Every clinical
record references patients, doctors and recorders by that same id
string; no foreign keys tie the record tables together, so each record
type is written independently of the others.
"""
from __future__ import annotations

import uuid
from datetime import timedelta

from django.db import models
from django.utils import timezone


class Role(models.TextChoices):
    PATIENT = 'patient', 'Patient'
    DOCTOR = 'doctor', 'Doctor'
    ADMIN = 'admin', 'Administrator'
    CARETAKER = 'caretaker', 'Caretaker'
    LAB_REPORTER = 'lab_reporter', 'Lab Reporter'
    NURSE = 'nurse', 'Nurse'


class Gender(models.TextChoices):
    MALE = 'male', 'Male'
    FEMALE = 'female', 'Female'
    OTHER = 'other', 'Other'


# Role given to a profile created before onboarding has been submitted.
DEFAULT_ROLE = Role.PATIENT


class UserProfile(models.Model):
    """Local profile for an identity provider account.

    A profile is created bare on first sign-in and becomes usable once
    phone, role, date of birth and gender have been submitted through
    profile completion.
    """
    external_id = models.CharField(max_length=128, unique=True)
    # NULL rather than '' so identities without an address do not collide
    email = models.EmailField(max_length=254, unique=True, null=True, blank=True)
    name = models.CharField(max_length=255, blank=True)
    first_name = models.CharField(max_length=150, blank=True)
    last_name = models.CharField(max_length=150, blank=True)
    phone = models.CharField(max_length=32, blank=True)
    role = models.CharField(max_length=20, choices=Role.choices, default=DEFAULT_ROLE, db_index=True)
    date_of_birth = models.DateField(null=True, blank=True)
    gender = models.CharField(max_length=10, choices=Gender.choices, blank=True)
    photo_url = models.URLField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True)
    last_login = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'users'
        ordering = ['name', 'id']

    def __str__(self) -> str:
        return f"{self.name or self.email or self.external_id} ({self.role})"

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    @property
    def is_complete(self) -> bool:
        return bool(self.phone and self.role and self.date_of_birth and self.gender)

    @property
    def missing_fields(self) -> list[str]:
        pairs = [
            ('phone', self.phone),
            ('role', self.role),
            ('dateOfBirth', self.date_of_birth),
            ('gender', self.gender),
        ]
        return [name for name, value in pairs if not value]


class PatientRecord(models.Model):
    """Clinical intake record for a patient, separate from the sign-in profile.

    ``patient_id`` links the record to the patient's identity provider
    account when there is one; records entered by staff for someone who
    has never signed in leave it empty.
    """
    GENDER_CHOICES = [
        ('male', 'Male'),
        ('female', 'Female'),
        ('other', 'Other'),
        ('prefer_not_to_say', 'Prefer not to say'),
    ]
    BLOOD_GROUPS = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-', 'Unknown']
    # list-valued history fields that accept single-entry additions
    HISTORY_FIELDS = ('allergies', 'chronic_conditions', 'past_surgeries')

    patient_id = models.CharField(max_length=128, unique=True, null=True, blank=True)
    primary_doctor_id = models.CharField(max_length=128, null=True, blank=True, db_index=True)
    name = models.CharField(max_length=100)
    date_of_birth = models.DateField()
    gender = models.CharField(max_length=20, choices=GENDER_CHOICES)
    blood_group = models.CharField(max_length=8, choices=[(g, g) for g in BLOOD_GROUPS], blank=True)
    emergency_contact_name = models.CharField(max_length=100, blank=True)
    emergency_contact_phone = models.CharField(max_length=32)
    address = models.CharField(max_length=500, blank=True)
    allergies = models.JSONField(default=list, blank=True)
    chronic_conditions = models.JSONField(default=list, blank=True)
    past_surgeries = models.JSONField(default=list, blank=True)
    family_history = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'patients'
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        return f"{self.name} ({self.patient_id or self.pk})"

    @property
    def age(self) -> int | None:
        dob = self.date_of_birth
        if not dob:
            return None
        today = timezone.localdate()
        return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))


class LiveSession(models.Model):
    """Stored reference to a teleconsultation room. Never updated after creation."""
    session_name = models.CharField(max_length=255)
    session_url = models.CharField(max_length=500)
    doctor_id = models.CharField(max_length=128, db_index=True)
    doctor_name = models.CharField(max_length=255, blank=True, default='')
    doctor_email = models.CharField(max_length=254, blank=True, default='')
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = 'live_sessions'
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        return f"{self.session_name} ({self.doctor_id})"


class Appointment(models.Model):
    STATUS_REQUESTED = 'requested'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    STATUS_SCHEDULED = 'scheduled'
    STATUS_CONFIRMED = 'confirmed'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_NO_SHOW = 'no-show'
    STATUS_RESCHEDULED = 'rescheduled'
    STATUS_CHOICES = [
        (STATUS_REQUESTED, 'Requested'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
        (STATUS_SCHEDULED, 'Scheduled'),
        (STATUS_CONFIRMED, 'Confirmed'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
        (STATUS_NO_SHOW, 'No show'),
        (STATUS_RESCHEDULED, 'Rescheduled'),
    ]
    TYPE_CHOICES = [
        ('in_person', 'In person'),
        ('virtual', 'Virtual'),
        ('follow_up', 'Follow up'),
        ('video_call', 'Video call'),
        ('phone_call', 'Phone call'),
        ('consultation', 'Consultation'),
        ('therapy_session', 'Therapy session'),
        ('emergency', 'Emergency'),
    ]
    PREFERRED_TIME_CHOICES = ['Morning (9-12)', 'Afternoon (12-3)', 'Evening (3-6)']
    RECURRENCE_CHOICES = [
        ('none', 'None'),
        ('daily', 'Daily'),
        ('weekly', 'Weekly'),
        ('biweekly', 'Biweekly'),
        ('monthly', 'Monthly'),
    ]

    patient_id = models.CharField(max_length=128, db_index=True)
    doctor_id = models.CharField(max_length=128, db_index=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_REQUESTED, db_index=True)
    appointment_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    scheduled_date = models.DateField(null=True, blank=True)
    start_time = models.DateTimeField(null=True, blank=True, db_index=True)
    end_time = models.DateTimeField(null=True, blank=True)
    duration_minutes = models.PositiveSmallIntegerField(null=True, blank=True)
    preferred_dates = models.JSONField(default=list, blank=True)
    preferred_times = models.JSONField(default=list, blank=True)
    reason = models.TextField(blank=True)
    location = models.CharField(max_length=255, blank=True)
    notes = models.TextField(blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    rejected_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.CharField(max_length=500, blank=True)
    is_recurring = models.BooleanField(default=False)
    recurrence_pattern = models.CharField(max_length=10, choices=RECURRENCE_CHOICES, default='none')
    recurrence_end_date = models.DateField(null=True, blank=True)
    reminder_sent_24h = models.BooleanField(default=False)
    reminder_sent_1h = models.BooleanField(default=False)
    reminder_sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'appointments'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['patient_id', 'start_time']),
            models.Index(fields=['doctor_id', 'start_time']),
        ]

    def __str__(self) -> str:
        return f"{self.appointment_type} {self.patient_id}->{self.doctor_id} ({self.status})"

    @property
    def is_upcoming(self) -> bool:
        return bool(self.start_time and self.start_time > timezone.now())

    @property
    def is_past(self) -> bool:
        end = self.end_time
        if end is None and self.start_time and self.duration_minutes:
            end = self.start_time + timedelta(minutes=self.duration_minutes)
        return bool(end and end < timezone.now())


class PhysicalVital(models.Model):
    METHOD_CHOICES = [
        ('manual_entry', 'Manual entry'),
        ('patient_sync', 'Patient sync'),
        ('wearable_api', 'Wearable API'),
        ('clinical_device', 'Clinical device'),
        ('other', 'Other'),
    ]
    # field -> (min, max), inclusive
    RANGES = {
        'systolic_bp': (0, 300),
        'diastolic_bp': (0, 200),
        'heart_rate': (0, 300),
        'blood_sugar': (0, 1000),
        'respiratory_rate': (0, 100),
        'temperature': (90, 110),
        'spo2': (0, 100),
        'weight': (0, 500),
        'hb': (0, 25),
        'bmi': (0, 100),
    }

    patient_id = models.CharField(max_length=128, db_index=True)
    recorded_by = models.CharField(max_length=128, null=True, blank=True, db_index=True)
    recorded_at = models.DateTimeField(default=timezone.now, db_index=True)
    systolic_bp = models.FloatField(null=True, blank=True)
    diastolic_bp = models.FloatField(null=True, blank=True)
    heart_rate = models.FloatField(null=True, blank=True)
    blood_sugar = models.FloatField(null=True, blank=True)
    respiratory_rate = models.FloatField(null=True, blank=True)
    temperature = models.FloatField(null=True, blank=True)
    spo2 = models.FloatField(null=True, blank=True)
    weight = models.FloatField(null=True, blank=True)
    hb = models.FloatField(null=True, blank=True)
    bmi = models.FloatField(null=True, blank=True)
    measurement_method = models.CharField(max_length=20, choices=METHOD_CHOICES, default='manual_entry')
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'physical_vitals'
        ordering = ['-recorded_at', '-id']

    def __str__(self) -> str:
        return f"vitals {self.patient_id} @ {self.recorded_at:%Y-%m-%d %H:%M}"

    @property
    def bp_status(self) -> str | None:
        s, d = self.systolic_bp, self.diastolic_bp
        if not (s and d):
            return None
        if s < 120 and d < 80:
            return 'Normal'
        if s < 130 and d < 80:
            return 'Elevated'
        if s < 140 or d < 90:
            return 'High Stage 1'
        if s < 180 or d < 120:
            return 'High Stage 2'
        return 'Hypertensive Crisis'

    @property
    def temp_status(self) -> str | None:
        t = self.temperature
        if not t:
            return None
        if t < 97:
            return 'Low'
        if t <= 99:
            return 'Normal'
        if t <= 100.4:
            return 'Slight Fever'
        if t <= 103:
            return 'Fever'
        return 'High Fever'


class MedicalDocument(models.Model):
    DOCUMENT_TYPES = [
        'lab_report', 'x_ray', 'mri_scan', 'ct_scan', 'ultrasound', 'ecg',
        'therapy_note', 'prescription', 'discharge_summary', 'symptom_photo',
        'wound_progress', 'medical_certificate', 'vaccination_record',
        'insurance_document', 'consent_form', 'other',
    ]
    CATEGORIES = [
        'radiology', 'pathology', 'cardiology', 'general',
        'progress_tracking', 'administrative', 'other',
    ]
    CATEGORY_BY_TYPE = {
        'x_ray': 'radiology',
        'mri_scan': 'radiology',
        'ct_scan': 'radiology',
        'ultrasound': 'radiology',
        'ecg': 'cardiology',
        'lab_report': 'pathology',
        'symptom_photo': 'progress_tracking',
        'wound_progress': 'progress_tracking',
        'medical_certificate': 'administrative',
        'insurance_document': 'administrative',
        'consent_form': 'administrative',
    }

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    patient_id = models.CharField(max_length=128, db_index=True)
    uploaded_by = models.CharField(max_length=128, db_index=True)
    file_name = models.CharField(max_length=255)
    file_url = models.CharField(max_length=500)
    storage_key = models.CharField(max_length=255, blank=True)
    file_size = models.PositiveBigIntegerField()
    file_type = models.CharField(max_length=120)
    document_type = models.CharField(max_length=32, choices=[(t, t) for t in DOCUMENT_TYPES], db_index=True)
    category = models.CharField(max_length=32, choices=[(c, c) for c in CATEGORIES], default='general', db_index=True)
    description = models.CharField(max_length=500, blank=True)
    tags = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    is_deleted = models.BooleanField(default=False)
    uploaded_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'medical_documents'
        ordering = ['-uploaded_at', '-id']
        indexes = [
            models.Index(fields=['patient_id', 'document_type']),
            models.Index(fields=['is_active', 'is_deleted']),
        ]

    def __str__(self) -> str:
        return f"{self.file_name} ({self.document_type})"

    @classmethod
    def category_for(cls, document_type: str) -> str:
        return cls.CATEGORY_BY_TYPE.get(document_type, 'general')

    @property
    def file_extension(self) -> str:
        return self.file_name.rsplit('.', 1)[-1].lower() if '.' in self.file_name else ''


class Notification(models.Model):
    TYPE_CHOICES = [
        ('appointment_reminder', 'Appointment reminder'),
        ('prescription_refill', 'Prescription refill'),
        ('lab_result', 'Lab result'),
        ('health_alert', 'Health alert'),
        ('system_update', 'System update'),
        ('message', 'Message'),
        ('payment_due', 'Payment due'),
        ('emergency', 'Emergency'),
    ]

    recipient_id = models.CharField(max_length=128, db_index=True)
    patient_id = models.CharField(max_length=128, db_index=True)
    notification_type = models.CharField(max_length=32, choices=TYPE_CHOICES, db_index=True)
    title = models.CharField(max_length=200)
    body = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False, db_index=True)
    sent_at = models.DateTimeField(default=timezone.now, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'notifications'
        ordering = ['-sent_at', '-id']
        indexes = [
            models.Index(fields=['recipient_id', 'is_read']),
        ]

    def __str__(self) -> str:
        return f"{self.notification_type}: {self.title}"


class Prescription(models.Model):
    patient_id = models.CharField(max_length=128, db_index=True)
    doctor_id = models.CharField(max_length=128, db_index=True)
    medication_name = models.CharField(max_length=200)
    dosage = models.CharField(max_length=100)
    frequency = models.CharField(max_length=100)
    duration_days = models.PositiveSmallIntegerField()
    instructions = models.TextField(blank=True)
    qr_code_url = models.CharField(max_length=500, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'prescriptions'
        ordering = ['-created_at', '-id']

    def __str__(self) -> str:
        return f"{self.medication_name} for {self.patient_id}"

    @property
    def expiry_date(self):
        if self.created_at and self.duration_days:
            return self.created_at + timedelta(days=self.duration_days)
        return None

    @property
    def is_expired(self) -> bool:
        expiry = self.expiry_date
        return bool(expiry and timezone.now() > expiry)

    @property
    def days_remaining(self) -> int:
        expiry = self.expiry_date
        if not expiry:
            return 0
        seconds = (expiry - timezone.now()).total_seconds()
        return max(0, -int(-seconds // 86400))


class AuditEvent(models.Model):
    actor_id = models.CharField(max_length=128, blank=True, null=True, db_index=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.CharField(max_length=128, blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'audit_events'
        indexes = [
            models.Index(fields=['action', 'created_at']),
            models.Index(fields=['object_type', 'object_id', 'created_at']),
        ]

    def __str__(self) -> str:
        return f"{self.action} {self.object_type}:{self.object_id}"

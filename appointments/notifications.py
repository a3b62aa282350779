# appointments/notifications.py
"""
Patient e-mails. Sending is best effort: a failure is logged and reported
in the return value, never raised into the booking or schedule flow.
"""
import logging

from django.conf import settings
from django.core.mail import send_mail

logger = logging.getLogger(__name__)


def _deliver(subject, message, recipient, notification_type):
    if not recipient:
        logger.debug(f"No e-mail address for {notification_type} notification")
        return False
    try:
        send_mail(subject, message, settings.DEFAULT_FROM_EMAIL, [recipient], fail_silently=False)
    except Exception as e:
        logger.error(f"Failed to send {notification_type} e-mail to {recipient}: {e}", exc_info=True)
        return False
    logger.info(f"Sent {notification_type} e-mail to {recipient}")
    return True


def send_booking_confirmation(appointment):
    """Confirmation sent after a public booking"""
    patient = appointment.patient
    subject = f"Turno confirmado - {settings.CLINIC_NAME}"
    message = (
        f"Hola {patient.name},\n\n"
        f"Tu turno quedó reservado:\n"
        f"  Servicio: {appointment.service.name}\n"
        f"  Profesional: {appointment.specialist.name}\n"
        f"  Fecha: {appointment.appointment_date:%d/%m/%Y}\n"
        f"  Hora: {appointment.appointment_time:%H:%M}\n"
        f"  Duración: {appointment.duration_minutes} minutos\n\n"
        f"Si no podés asistir, avisanos con anticipación.\n\n"
        f"{settings.CLINIC_NAME}\n"
    )
    return _deliver(subject, message, patient.email, 'booking confirmation')


def send_schedule_change_notice(notice):
    """Notice built by conflicts.build_patient_notice"""
    return _deliver(notice['subject'], notice['message'], notice['patient_email'], 'schedule change')

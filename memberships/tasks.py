# memberships/tasks.py
from celery import shared_task
from .models import Membership, PendingPayment
from members.whatsapp import send_whatsapp_message
import logging
from django.utils import timezone
from django.conf import settings
from twilio.base.exceptions import TwilioRestException
from django.template.loader import render_to_string
from xhtml2pdf import pisa
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from urllib.parse import urljoin
import io

logger = logging.getLogger(__name__)


def get_public_file_url(file_path):
    """Publicly reachable URL for a stored file, or None"""
    try:
        url = default_storage.url(file_path)
        if url.startswith('http'):
            return url
        return urljoin(getattr(settings, 'BASE_URL', 'http://localhost:8000'), url)
    except Exception as e:
        logger.error(f"Error getting public URL for {file_path}: {e}")
        return None


def generate_renewal_receipt_pdf(membership):
    """Render the renewal receipt (amount due, new dates) to PDF and store it"""
    payment = membership.pending_payments.filter(status=PendingPayment.Status.PENDING).first()
    gym = membership.gym
    context = {
        'membership': membership,
        'member': membership.member,
        'payment': payment,
        'amount_due': payment.amount if payment else membership.cost,
        'gym_name': gym.name,
        'gym_address': gym.address,
        'gym_phone': gym.phone,
        'gym_email': gym.email,
        'generated_date': timezone.localdate().strftime('%d/%m/%Y'),
    }

    html_string = render_to_string('memberships/renewal_receipt.html', context)

    pdf_buffer = io.BytesIO()
    pisa_status = pisa.CreatePDF(html_string, dest=pdf_buffer, encoding='UTF-8')
    if pisa_status.err:
        logger.error(f"PDF generation failed with errors: {pisa_status.err}")
        raise RuntimeError("PDF generation failed")

    pdf_data = pdf_buffer.getvalue()
    pdf_buffer.close()

    pdf_filename = f'renewal_{membership.id}_{timezone.now().strftime("%Y%m%d_%H%M%S")}.pdf'
    saved_path = default_storage.save(f'memberships/receipts/{pdf_filename}', ContentFile(pdf_data, name=pdf_filename))

    logger.info(f"PDF generated successfully: {saved_path}")
    return saved_path


def create_renewal_message(membership, amount_due, pdf_attached=False):
    receipt_text = (
        "Your renewal receipt is attached to this message."
        if pdf_attached else
        "Ask at the front desk for your renewal receipt."
    )
    return f"""Hi {membership.member.first_name},

Your {membership.activity_name} membership has been renewed.

Membership details:
- Valid from: {membership.start_date.strftime('%d/%m/%Y')}
- Valid until: {membership.end_date.strftime('%d/%m/%Y')}
- Amount due: ${amount_due:,.2f}

{receipt_text}

Thank you for training with {membership.gym.name}!"""


def create_expiry_reminder_message(membership, days_until_expiry):
    if days_until_expiry is None or days_until_expiry <= 0:
        return f"""Hi {membership.member.first_name},

Your {membership.activity_name} membership expired on {membership.end_date.strftime('%d/%m/%Y')}.

Renew it at the front desk to keep training with us.

{membership.gym.name}"""

    plural = 's' if days_until_expiry > 1 else ''
    return f"""Hi {membership.member.first_name},

Your {membership.activity_name} membership expires in {days_until_expiry} day{plural} ({membership.end_date.strftime('%d/%m/%Y')}).

Renew it at the front desk to keep training with us.

{membership.gym.name}"""


@shared_task(bind=True, max_retries=3)
def send_membership_renewed_message(self, membership_id):
    """
    Send WhatsApp message with the PDF receipt after a membership is renewed
    """
    task_id = self.request.id
    logger.info(f"[Task {task_id}] Starting renewal notice task")

    try:
        membership = Membership.objects.select_related('member', 'gym').get(id=membership_id)
    except Membership.DoesNotExist:
        logger.error(f"[Task {task_id}] Membership with ID {membership_id} not found")
        return {'status': 'error', 'message': 'Membership not found'}

    member = membership.member
    if not member.phone:
        logger.warning(f"[Task {task_id}] No phone number found for member: {member.full_name}")
        return {'status': 'no_phone', 'message': 'Member has no phone number'}

    pdf_path = None
    pdf_url = None
    try:
        pdf_path = generate_renewal_receipt_pdf(membership)
        pdf_url = get_public_file_url(pdf_path)
    except Exception as pdf_error:
        logger.error(f"[Task {task_id}] PDF generation failed: {pdf_error}")

    payment = membership.pending_payments.first()
    amount_due = payment.amount if payment else membership.cost
    message = create_renewal_message(membership, amount_due, pdf_attached=bool(pdf_url))

    try:
        message_sid = send_whatsapp_message(member.phone, message, media_url=pdf_url)
    except TwilioRestException as e:
        logger.error(f"[Task {task_id}] Twilio error: {e}")
        if self.request.retries < self.max_retries:
            logger.info(f"[Task {task_id}] Retrying in 60 seconds... (Attempt {self.request.retries + 1}/{self.max_retries})")
            raise self.retry(countdown=60, exc=e)
        logger.error(f"[Task {task_id}] Max retries reached. Task failed.")
        return {'status': 'failed', 'message': f'Twilio error after {self.max_retries} retries: {e}'}

    logger.info(f"[Task {task_id}] Renewal notice sent. SID: {message_sid}")
    return {
        'status': 'success',
        'message_sid': message_sid,
        'membership_id': str(membership_id),
        'pdf_path': pdf_path,
    }


@shared_task(bind=True, max_retries=3)
def send_membership_expiry_reminder(self, membership_id, days_until_expiry):
    """
    Send WhatsApp reminder when an auto-renewal membership is about to expire or has expired
    """
    task_id = self.request.id
    logger.info(f"[Task {task_id}] Starting expiry reminder task")

    try:
        membership = Membership.objects.select_related('member', 'gym').get(id=membership_id)
    except Membership.DoesNotExist:
        logger.error(f"[Task {task_id}] Membership with ID {membership_id} not found")
        return {'status': 'error', 'message': 'Membership not found'}

    if not membership.member.phone:
        logger.warning(f"[Task {task_id}] No phone number found for member: {membership.member_name}")
        return {'status': 'no_phone', 'message': 'Member has no phone number'}

    message = create_expiry_reminder_message(membership, days_until_expiry)
    try:
        message_sid = send_whatsapp_message(membership.member.phone, message)
    except TwilioRestException as e:
        logger.error(f"[Task {task_id}] Error in expiry reminder: {e}")
        if self.request.retries < self.max_retries:
            raise self.retry(countdown=60, exc=e)
        return {'status': 'failed', 'message': f'Error after {self.max_retries} retries: {e}'}

    logger.info(f"[Task {task_id}] Expiry reminder sent successfully. SID: {message_sid}")
    return {'status': 'success', 'message_sid': message_sid, 'membership_id': str(membership_id)}


@shared_task
def run_monthly_auto_renewals():
    """
    Daily beat task: run the monthly renewal batch for every gym where it is due
    """
    from gyms.models import Gym
    from .automation import run_monthly_renewals

    today = timezone.localdate()
    ran = 0
    for gym in Gym.objects.filter(is_active=True):
        try:
            result = run_monthly_renewals(gym, today=today)
        except Exception as e:
            logger.error(f"Monthly renewal failed for gym {gym.pk}: {e}", exc_info=True)
            continue
        if result['ran']:
            ran += 1
            logger.info(f"Monthly renewal for {gym.name}: {result['renewed']} renewed, {result['failed']} failed")

    return f"Monthly renewal ran for {ran} gyms"


@shared_task
def expire_lapsed_memberships_task():
    """
    Daily beat task: flag lapsed memberships without auto renewal as expired
    """
    from gyms.models import Gym
    from .services import expire_lapsed_memberships

    today = timezone.localdate()
    total = 0
    for gym in Gym.objects.filter(is_active=True):
        total += expire_lapsed_memberships(gym, today=today)

    logger.info(f"Marked {total} memberships as expired")
    return f"Marked {total} memberships as expired"

# Booking and sign-in notifications
import os
import sys
import resend
from typing import Dict

from app.utils.formatting import format_currency, format_date, format_time


def _layout(title: str, subtitle: str, body: str) -> str:
    return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="UTF-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="margin: 0; padding: 0; font-family: 'Segoe UI', Arial, sans-serif; background-color: #1a1a1a;">
            <table width="100%" cellpadding="0" cellspacing="0" style="background-color: #1a1a1a; padding: 30px 20px;">
                <tr>
                    <td align="center">
                        <table width="600" cellpadding="0" cellspacing="0" style="background-color: #ffffff; border-radius: 16px; overflow: hidden;">
                            <tr>
                                <td style="background-color: #111111; padding: 40px; text-align: center;">
                                    <h1 style="color: #ffffff; margin: 0; font-size: 32px; letter-spacing: 4px;">INKBOOK</h1>
                                    <h2 style="color: #e5e5e5; margin: 15px 0 0 0; font-size: 22px;">{title}</h2>
                                    <p style="color: #a3a3a3; margin: 8px 0 0 0; font-size: 15px;">{subtitle}</p>
                                </td>
                            </tr>
                            <tr>
                                <td style="padding: 40px; color: #2d3748; font-size: 16px; line-height: 1.6;">
                                    {body}
                                </td>
                            </tr>
                        </table>
                    </td>
                </tr>
            </table>
        </body>
        </html>
        """


class EmailService:
    """
    Centralized email service using Resend
    """

    def __init__(self):
        """Initialize Resend with API key"""
        self.from_email = os.getenv("RESEND_FROM_EMAIL", "bookings@inkbook.app")
        self.frontend_url = os.getenv("FRONTEND_URL", "http://localhost:3000")
        self.api_key = os.getenv("RESEND_API_KEY")

        testing = "pytest" in sys.modules or os.getenv("TESTING") in ("1", "True")
        if testing or not self.api_key:
            self.disabled = True
            print("⚠️ EmailService disabled (test mode or RESEND_API_KEY missing)")
            return

        self.disabled = False
        resend.api_key = self.api_key

    def _send(self, to_email: str, subject: str, html: str) -> Dict:
        if self.disabled:
            return {"success": True, "message": "Email skipped (service disabled)"}

        try:
            email_response = resend.Emails.send(
                {
                    "from": self.from_email,
                    "to": [to_email],
                    "subject": subject,
                    "html": html,
                }
            )
            return {
                "success": True,
                "message": "Email sent successfully",
                "email_id": email_response.get("id"),
            }
        except Exception as e:
            return {"success": False, "error": str(e)}

    def send_magic_link(self, to_email: str, token: str, redirect_path: str = "/dashboard") -> Dict:
        """
        Send a one-time sign-in link

        Args:
            to_email: Recipient email address
            token: Signed magic-link token
            redirect_path: Page to land on after signing in

        Returns:
            Dict with 'success' boolean and 'message' or 'error'
        """
        link = f"{self.frontend_url}/auth/callback?token={token}&redirect={redirect_path}"
        body = f"""
            <p>Click the button below to sign in. The link expires in 15 minutes.</p>
            <p style="text-align: center; margin: 30px 0;">
                <a href="{link}" style="background-color: #111111; color: #ffffff; padding: 14px 32px; border-radius: 8px; text-decoration: none;">Sign in to InkBook</a>
            </p>
            <p style="color: #718096; font-size: 13px;">If you did not request this email you can ignore it.</p>
        """
        return self._send(to_email, "Your InkBook sign-in link", _layout("Sign in", "One click and you're in", body))

    def send_booking_confirmation(
        self,
        to_email,
        client_name,
        artist_name,
        studio_name,
        booking_date,
        start_time,
        end_time,
        deposit_amount,
        total_price,
        booking_id,
        status,
    ):
        """
        Send booking confirmation email immediately after the deposit is paid
        """
        pending_note = (
            "<p>Your artist will review your custom request and confirm the appointment shortly.</p>"
            if status == "pending"
            else ""
        )
        body = f"""
            <p>Hi <strong>{client_name}</strong>,</p>
            <p>Your deposit of <strong>{format_currency(deposit_amount)}</strong> has been received.</p>
            <table cellpadding="6" style="margin: 20px 0;">
                <tr><td><strong>Artist</strong></td><td>{artist_name}</td></tr>
                <tr><td><strong>Studio</strong></td><td>{studio_name or "Independent"}</td></tr>
                <tr><td><strong>Date</strong></td><td>{format_date(booking_date)}</td></tr>
                <tr><td><strong>Time</strong></td><td>{format_time(start_time)} - {format_time(end_time)}</td></tr>
                <tr><td><strong>Estimated total</strong></td><td>{format_currency(total_price)}</td></tr>
                <tr><td><strong>Booking #</strong></td><td>{booking_id}</td></tr>
            </table>
            {pending_note}
            <p><a href="{self.frontend_url}/dashboard">View your bookings</a></p>
        """
        return self._send(
            to_email,
            f"Booking confirmed with {artist_name}",
            _layout("Booking Received", "Your appointment is reserved", body),
        )

    def send_cancellation_notification(
        self,
        to_email,
        recipient_name,
        artist_name,
        booking_date,
        start_time,
        reason,
        deposit_outcome,
    ):
        """
        Notify a client that their booking was cancelled
        """
        deposit_line = (
            "Your deposit will be refunded to your original payment method."
            if deposit_outcome == "refunded"
            else "Because the cancellation was inside the cancellation window, the deposit is non-refundable."
        )
        body = f"""
            <p>Hi <strong>{recipient_name}</strong>,</p>
            <p>Your appointment with <strong>{artist_name}</strong> on
            {format_date(booking_date)} at {format_time(start_time)} has been cancelled.</p>
            <p><strong>Reason:</strong> {reason or "Not provided"}</p>
            <p>{deposit_line}</p>
        """
        return self._send(
            to_email,
            "Your booking was cancelled",
            _layout("Booking Cancelled", "We're sorry to see this one go", body),
        )


email_service = EmailService()

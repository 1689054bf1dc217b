"""Transactional email bodies as (subject, text, html) triples."""
from datetime import datetime
from decimal import Decimal
from html import escape

from headway.core.config import settings


def completion_url(token: str) -> str:
    return f"{settings.SITE_URL.rstrip('/')}/reserva/completar?token={token}"


def _layout(title: str, inner_html: str) -> str:
    return (
        "<!doctype html><html><body style=\"font-family:Arial,sans-serif;color:#1f2937\">"
        f"<h2>{escape(title)}</h2>{inner_html}"
        "<p style=\"color:#6b7280;font-size:12px\">Headway Trips</p>"
        "</body></html>"
    )


def _button(url: str, label: str) -> str:
    return (
        f"<p><a href=\"{escape(url)}\" style=\"background:#0f766e;color:#fff;padding:12px 20px;"
        f"text-decoration:none;border-radius:6px\">{escape(label)}</a></p>"
    )


def booking_completion_email(customer_name: str, trip_title: str, url: str, expires_at: datetime | None):
    subject = f"Completa tu reserva - {trip_title}"
    expiry = expires_at.strftime("%d/%m/%Y %H:%M UTC") if expires_at else ""
    text = (
        f"¡Pago recibido, {customer_name}!\n\n"
        f"Hemos recibido tu depósito para {trip_title}. Solo falta completar tus datos personales "
        f"para confirmar tu reserva:\n{url}\n"
    )
    if expiry:
        text += f"\nEste enlace expira el {expiry}.\n"
    html = _layout(
        f"¡Pago recibido, {customer_name}!",
        f"<p>Hemos recibido tu depósito para <strong>{escape(trip_title)}</strong>. "
        "Solo falta un paso: completar tus datos personales para confirmar tu reserva.</p>"
        + _button(url, "Completar mi reserva")
        + (f"<p>Este enlace expira el <strong>{escape(expiry)}</strong>.</p>" if expiry else ""),
    )
    return subject, text, html


def booking_reminder_email(customer_name: str, trip_title: str, url: str):
    subject = f"Recordatorio: completa tu reserva para {trip_title}"
    text = (
        f"Hola {customer_name},\n\n"
        f"Tu reserva para {trip_title} aún no tiene tus datos de viaje. Complétalos aquí:\n{url}\n"
    )
    html = _layout(
        f"Hola {customer_name}",
        f"<p>Tu reserva para <strong>{escape(trip_title)}</strong> aún no tiene tus datos de viaje.</p>"
        + _button(url, "Completar mi reserva"),
    )
    return subject, text, html


def booking_confirmation_email(customer_name: str, trip_title: str, departure_date: str | None,
                               total_price: Decimal, currency: str, passengers: int):
    subject = f"Reserva confirmada - {trip_title}"
    lines = [
        f"Viaje: {trip_title}",
        f"Salida: {departure_date or 'por confirmar'}",
        f"Pasajeros: {passengers}",
        f"Total: {total_price} {currency}",
    ]
    text = f"¡Gracias, {customer_name}! Tu reserva está confirmada.\n\n" + "\n".join(lines) + "\n"
    html = _layout(
        f"¡Gracias, {customer_name}!",
        "<p>Tu reserva está confirmada.</p><ul>" + "".join(f"<li>{escape(l)}</li>" for l in lines) + "</ul>",
    )
    return subject, text, html


def new_booking_notification_email(customer_name: str, customer_email: str, trip_title: str, passengers: int,
                                   total_price: Decimal, currency: str, travel_date: str, booking_id: str,
                                   with_payment: bool):
    subject = f"Nueva reserva - {trip_title} ({customer_name})"
    lines = [
        f"Cliente: {customer_name} <{customer_email}>",
        f"Viaje: {trip_title}",
        f"Fecha: {travel_date}",
        f"Pasajeros: {passengers}",
        f"Total: {total_price} {currency}",
        f"Depósito online: {'sí' if with_payment else 'no'}",
        f"ID: {booking_id}",
    ]
    text = "\n".join(lines) + "\n"
    html = _layout("Nueva reserva", "<ul>" + "".join(f"<li>{escape(l)}</li>" for l in lines) + "</ul>")
    return subject, text, html

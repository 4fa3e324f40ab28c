from django.core.management.base import CommandError

from cards.billing import parse_month
from core.models import Household


def get_household(slug):
    try:
        return Household.objects.get(slug=slug)
    except Household.DoesNotExist:
        raise CommandError(f"Household não encontrado: {slug}")


def month_option(value):
    try:
        return parse_month(value)
    except ValueError:
        raise CommandError(f"Mês inválido: {value}. Use AAAA-MM.")


def validation_message(exc):
    return "; ".join(exc.messages)

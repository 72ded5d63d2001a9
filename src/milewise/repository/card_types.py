import re

from milewise.domain.models import PaymentMethod

_WHITESPACE = re.compile(r"\s+")


class CardTypeIdService:
    """Derives the key joining a payment method to its reward rules.

    Format is `{issuer}-{name}`, both lower-cased with runs of whitespace
    replaced by a hyphen: ("American Express", "Gold Card") ->
    "american-express-gold-card". Other characters are kept as-is.
    """

    def generate_card_type_id(self, issuer: str, name: str) -> str:
        if not issuer or not issuer.strip() or not name or not name.strip():
            raise ValueError("Both issuer and name are required to generate a card type ID")
        return f"{self._slug(issuer)}-{self._slug(name)}"

    def for_payment_method(self, payment_method: PaymentMethod) -> str:
        return self.generate_card_type_id(payment_method.issuer, payment_method.name)

    @staticmethod
    def is_valid_card_type_id(card_type_id: str) -> bool:
        if not card_type_id or not card_type_id.strip():
            return False
        if "-" not in card_type_id or card_type_id != card_type_id.lower():
            return False
        if card_type_id.startswith("-") or card_type_id.endswith("-"):
            return False
        return "--" not in card_type_id

    @staticmethod
    def _slug(value: str) -> str:
        return _WHITESPACE.sub("-", value.strip().lower())

# orderflow/services/order_codes.py
import secrets
import time

#bez 0/O i 1/I, kod ma byc czytelny dla czlowieka
ALPHABET = "23456789ABCDEFGHJKLMNPQRSTUVWXYZ"
_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def _base36(value: int) -> str:
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits)) or "0"


class OrderCodeGenerator:
    """
    Kod zamowienia: ORD-<czas w ms, base36>-<losowy sufiks>, np. ORD-LZ3K9Q1A-7HX2KD.
    Niezalezny od id w bazie. Unikalnosc gwarantuje constraint w bazie,
    petla ponowien jest w OrderService.
    """

    def __init__(self, prefix: str = "ORD", suffix_length: int = 6, clock=time.time):
        self.prefix = prefix
        self.suffix_length = suffix_length
        self.clock = clock

    def generate(self) -> str:
        millis = int(self.clock() * 1000)
        suffix = "".join(secrets.choice(ALPHABET) for _ in range(self.suffix_length))
        return f"{self.prefix}-{_base36(millis)}-{suffix}"

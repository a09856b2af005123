"""
Currency Catalogue

The currencies a user can pick as the active currency. Only the
selection data lives here; formatting amounts for display is left to
the presentation layer.
"""

from typing import Optional

from expense_tracker.models.ledger import CurrencyOption


def _currency(code: str, name: str, symbol: str, locale: str) -> CurrencyOption:
    return CurrencyOption(code=code, name=name, symbol=symbol, locale=locale)


CURRENCY_LIST: tuple[CurrencyOption, ...] = tuple(sorted(
    (
        _currency("USD", "US Dollar", "$", "en-US"),
        _currency("EUR", "Euro", "€", "de-DE"),
        _currency("GBP", "British Pound", "£", "en-GB"),
        _currency("JPY", "Japanese Yen", "¥", "ja-JP"),
        _currency("AUD", "Australian Dollar", "A$", "en-AU"),
        _currency("CAD", "Canadian Dollar", "C$", "en-CA"),
        _currency("CHF", "Swiss Franc", "CHF", "de-CH"),
        _currency("CNY", "Chinese Yuan", "¥", "zh-CN"),
        _currency("HKD", "Hong Kong Dollar", "HK$", "en-HK"),
        _currency("SGD", "Singapore Dollar", "S$", "en-SG"),
        _currency("INR", "Indian Rupee", "₹", "en-IN"),
        _currency("KRW", "South Korean Won", "₩", "ko-KR"),
        _currency("NZD", "New Zealand Dollar", "NZ$", "en-NZ"),
        _currency("SEK", "Swedish Krona", "kr", "sv-SE"),
        _currency("NOK", "Norwegian Krone", "kr", "nb-NO"),
        _currency("DKK", "Danish Krone", "kr", "da-DK"),
        _currency("MXN", "Mexican Peso", "$", "es-MX"),
        _currency("BRL", "Brazilian Real", "R$", "pt-BR"),
        _currency("ZAR", "South African Rand", "R", "en-ZA"),
        _currency("RUB", "Russian Ruble", "₽", "ru-RU"),
        _currency("TRY", "Turkish Lira", "₺", "tr-TR"),
        _currency("AED", "UAE Dirham", "د.إ", "ar-AE"),
        _currency("SAR", "Saudi Riyal", "﷼", "ar-SA"),
        _currency("ILS", "Israeli New Shekel", "₪", "he-IL"),
        _currency("PLN", "Polish Złoty", "zł", "pl-PL"),
        _currency("CZK", "Czech Koruna", "Kč", "cs-CZ"),
        _currency("HUF", "Hungarian Forint", "Ft", "hu-HU"),
        _currency("ARS", "Argentine Peso", "$", "es-AR"),
        _currency("CLP", "Chilean Peso", "$", "es-CL"),
        _currency("COP", "Colombian Peso", "$", "es-CO"),
        _currency("PEN", "Peruvian Sol", "S/", "es-PE"),
        _currency("UYU", "Uruguayan Peso", "$", "es-UY"),
        _currency("NGN", "Nigerian Naira", "₦", "en-NG"),
        _currency("GHS", "Ghanaian Cedi", "₵", "en-GH"),
        _currency("KES", "Kenyan Shilling", "KSh", "en-KE"),
        _currency("EGP", "Egyptian Pound", "£", "ar-EG"),
        _currency("MAD", "Moroccan Dirham", "د.م.", "ar-MA"),
        _currency("MVR", "Maldivian Rufiyaa", "ރ", "en-MV"),
        _currency("PKR", "Pakistani Rupee", "₨", "ur-PK"),
        _currency("BDT", "Bangladeshi Taka", "৳", "bn-BD"),
        _currency("THB", "Thai Baht", "฿", "th-TH"),
        _currency("VND", "Vietnamese Dong", "₫", "vi-VN"),
        _currency("IDR", "Indonesian Rupiah", "Rp", "id-ID"),
        _currency("MYR", "Malaysian Ringgit", "RM", "ms-MY"),
        _currency("PHP", "Philippine Peso", "₱", "en-PH"),
        _currency("TWD", "New Taiwan Dollar", "NT$", "zh-TW"),
        _currency("KHR", "Cambodian Riel", "៛", "km-KH"),
        _currency("LAK", "Lao Kip", "₭", "lo-LA"),
        _currency("MMK", "Myanmar Kyat", "K", "my-MM"),
        _currency("BHD", "Bahraini Dinar", ".د.ب", "ar-BH"),
        _currency("QAR", "Qatari Riyal", "﷼", "ar-QA"),
        _currency("KWD", "Kuwaiti Dinar", "د.ك", "ar-KW"),
    ),
    key=lambda currency: currency.name.lower(),
))


def find_currency_by_code(code: str) -> Optional[CurrencyOption]:
    """Look up a currency by ISO code, case-insensitively."""
    wanted = (code or "").strip().lower()
    return next((c for c in CURRENCY_LIST if c.code.lower() == wanted), None)


def filter_currencies(query: str) -> tuple[CurrencyOption, ...]:
    """Currencies whose name or code contains `query` (empty query returns all)."""
    normalized = (query or "").strip().lower()
    if not normalized:
        return CURRENCY_LIST
    return tuple(
        currency for currency in CURRENCY_LIST
        if normalized in currency.name.lower() or normalized in currency.code.lower()
    )

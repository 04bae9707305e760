from core.translations import TRANSLATIONS, get_translation


def test_placeholders_are_replaced():
    assert get_translation("en", "subject", itemName="Paper") == "Low Stock Alert: Paper"
    assert get_translation("en", "body", itemName="Paper", currentStock=2) == 'The item "Paper" is at 2 units.'


def test_french_strings():
    assert get_translation("fr", "title") == "Alerte Stock Faible"


def test_unknown_language_falls_back_to_english():
    assert get_translation("de", "title") == "Low Stock Alert"


def test_unknown_key_returns_key():
    assert get_translation("en", "missing") == "missing"


def test_every_language_has_every_key():
    keys = set(TRANSLATIONS["en"])
    for language, table in TRANSLATIONS.items():
        assert set(table) == keys, language

from user_service.core.config.settings import settings
from user_service.utils.i18n import _translations, get_translated_message, setup_i18n


def test_setup_i18n_loads_every_supported_language():
    setup_i18n()
    for lang in settings.SUPPORTED_LANGUAGES:
        assert lang in _translations


def test_english_message():
    assert get_translated_message("user_not_found", "en") == "User not found"


def test_spanish_message():
    assert get_translated_message("user_not_found", "es") == "Usuario no encontrado"


def test_unsupported_locale_falls_back_to_default():
    assert get_translated_message("user_not_found", "xx") == get_translated_message(
        "user_not_found", settings.DEFAULT_LANGUAGE
    )


def test_unknown_key_returns_key():
    assert get_translated_message("no_such_message_key", "en") == "no_such_message_key"


def test_get_translated_message_prefers_gettext(mocker):
    mock_translation = mocker.MagicMock()
    mock_translation.gettext.return_value = "Translated text"
    mocker.patch.dict(_translations, {settings.DEFAULT_LANGUAGE: mock_translation})

    result = get_translated_message("test_key", settings.DEFAULT_LANGUAGE)

    assert result == "Translated text"
    mock_translation.gettext.assert_called_once_with("test_key")

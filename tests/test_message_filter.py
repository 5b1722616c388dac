import pytest

from gigmarket.services.message_filter import (
    CONTACT_KEYWORD,
    EMAIL,
    PHONE_NUMBER,
    TOO_MANY_DIGITS,
    digit_count,
    filter_outbound,
    normalize_text,
)


@pytest.mark.parametrize("text", [
    "Posso ir sexta",
    "Posso levar 3 caixas",
    "Fechado por R$ 150,00 o frete",
    "Vou chamar reforço pra descarregar",
    "Chego às 8h na portaria",
])
def test_ordinary_messages_pass(text):
    result = filter_outbound(text)
    assert result.allowed
    assert result.reason is None


@pytest.mark.parametrize("text, reason", [
    ("Me chama no zap", CONTACT_KEYWORD),
    ("me manda no WHATSAPP", CONTACT_KEYWORD),
    ("call me later", CONTACT_KEYWORD),
    ("11987654321", PHONE_NUMBER),
    ("(11) 98765-4321", PHONE_NUMBER),
    ("fone 3456 7890", PHONE_NUMBER),
    ("meu email é joao.silva@gmail.com", EMAIL),
    ("joao (at) provedor (dot) com", EMAIL),
    ("procura no hotmail", EMAIL),
    ("São 1234567 tijolos", TOO_MANY_DIGITS),
])
def test_contact_attempts_are_blocked(text, reason):
    result = filter_outbound(text)
    assert not result.allowed
    assert result.reason == reason
    assert result.message


def test_spelled_digits_count_as_digits():
    assert normalize_text("nove oito sete") == "9 8 7"
    result = filter_outbound("nove oito sete seis cinco quatro")
    assert not result.allowed
    assert result.reason == TOO_MANY_DIGITS


def test_um_is_not_a_digit():
    assert normalize_text("um caminhão") == "um caminhão"


def test_five_digits_is_the_limit():
    assert digit_count("12 34 5") == 5
    assert filter_outbound("lote 12 34 5").allowed
    assert not filter_outbound("lote 12 34 56").allowed


def test_empty_text_is_allowed():
    assert filter_outbound("").allowed

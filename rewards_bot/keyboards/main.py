# rewards_bot/keyboards/main.py
from aiogram.types import KeyboardButton, ReplyKeyboardMarkup

BTN_SPIN = "🎡 Spin the wheel"
BTN_REDEEM = "☕ Get a drink"
BTN_BALANCE = "💰 Balance"
BTN_REFERRAL = "👥 Invite a friend"
BTN_SEND_LOCATION = "📍 Send my location"


def main_menu_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[
            [KeyboardButton(text=BTN_SPIN), KeyboardButton(text=BTN_REDEEM)],
            [KeyboardButton(text=BTN_BALANCE), KeyboardButton(text=BTN_REFERRAL)],
        ],
        resize_keyboard=True,
        input_field_placeholder="Choose an action…",
        selective=False,
        one_time_keyboard=False,
    )


def location_request_kb() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text=BTN_SEND_LOCATION, request_location=True)]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )

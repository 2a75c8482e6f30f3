# src/core/__init__.py
"""
Доменный слой: склад карточек, расчёт покупок, пользователи, лента ссылок, посещения.
"""

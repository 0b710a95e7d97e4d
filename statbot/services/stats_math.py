"""Производные метрики статистики."""


def average_words(word_count: int, message_count: int) -> int:
    """
    Среднее слов на сообщение с округлением ВВЕРХ.

    Единственное место, где считается среднее: и для строки одной группы,
    и для сумм по всем группам (сначала суммы, потом деление).
    Целочисленная арифметика, без float: ceil(7 / 3) == 3.
    """
    if message_count <= 0:
        return 0
    return -(-word_count // message_count)


def total_pages(total: int, limit: int) -> int:
    """ceil(total / limit), 0 страниц для пустого набора."""
    if limit <= 0:
        return 0
    return -(-total // limit)


def page_to_offset(page: int, limit: int) -> int:
    """Страницы на API нумеруются с 1, offset - с 0."""
    return (max(page, 1) - 1) * limit

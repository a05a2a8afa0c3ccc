"""Console message tables, looked up by language tag."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Messages:
    """Every operator-facing string, for one language."""

    # Wizard
    wizard_title: str
    scan_msg: str
    scan_fail: str
    enter_ip_manual: str
    select_net: str
    selected_net: str
    enter_ip_prompt: str
    sleep_mins_prompt: str
    grace_sec_prompt: str
    wakeup_sec_prompt: str
    scan_int_prompt: str
    settings_saved: str
    # Daemon
    daemon_start: str
    daemon_net: str
    daemon_interval: str
    conn_lost: str
    conn_restored: str
    no_light_sleep: str
    sleep_ok: str
    sleep_failed: str
    waking_up: str
    paused: str
    # Control
    ctrl_title: str
    ctrl_action: str
    ctrl_pause: str
    ctrl_resume: str
    ctrl_kill: str
    ctrl_exit: str
    pause_prompt: str
    pause_activated: str
    pause_removed: str
    process_killed: str
    not_running: str


EN = Messages(
    wizard_title="--- PORTAL SETUP WIZARD ---",
    scan_msg="Scanning networks...",
    scan_fail="No networks found.",
    enter_ip_manual="Enter Lighthouse IP manually",
    select_net="Select network",
    selected_net="Selected network:",
    enter_ip_prompt="Enter Lighthouse IP",
    sleep_mins_prompt="Minutes to sleep without light?",
    grace_sec_prompt="Grace period (sec) before sleep?",
    wakeup_sec_prompt="Wait (sec) after waking up?",
    scan_int_prompt="Scan interval (sec)?",
    settings_saved="Settings saved to",
    daemon_start="Portal Daemon: START",
    daemon_net="Network:",
    daemon_interval="Interval:",
    conn_lost="Connection lost. Waiting",
    conn_restored="Connection restored.",
    no_light_sleep="No light. Sleeping",
    sleep_ok="Sleep OK.",
    sleep_failed="Suspend failed:",
    waking_up="Woke up. Waiting",
    paused="Paused until",
    ctrl_title="--- PORTAL CONTROL ---",
    ctrl_action="Action?",
    ctrl_pause="PAUSE (disable sleep for X mins)",
    ctrl_resume="RESUME (enable sleep mode)",
    ctrl_kill="KILL process",
    ctrl_exit="Exit",
    pause_prompt="Pause for how many MINUTES?",
    pause_activated="Pause activated for",
    pause_removed="Pause removed.",
    process_killed="Process stopped.",
    not_running="Daemon is not running.",
)

RU = Messages(
    wizard_title="--- МАСТЕР НАСТРОЙКИ PORTAL ---",
    scan_msg="Сканирую сети...",
    scan_fail="Сети не найдены.",
    enter_ip_manual="Ввести IP Маяка вручную",
    select_net="Выбери сеть",
    selected_net="Выбрана сеть:",
    enter_ip_prompt="Введи IP Маяка",
    sleep_mins_prompt="Сколько МИНУТ спать без света?",
    grace_sec_prompt="Грейс-период (сек) перед сном?",
    wakeup_sec_prompt="Ждать сек. после включения?",
    scan_int_prompt="Интервал проверки (сек)?",
    settings_saved="Настройки сохранены в",
    daemon_start="Portal Daemon: ЗАПУСК",
    daemon_net="Сеть:",
    daemon_interval="Интервал:",
    conn_lost="Потеря связи. Ждем",
    conn_restored="Связь вернулась.",
    no_light_sleep="Света нет. Сон",
    sleep_ok="Сон OK.",
    sleep_failed="Ошибка сна:",
    waking_up="Проснулись. Ждем",
    paused="Пауза до",
    ctrl_title="--- УПРАВЛЕНИЕ PORTAL ---",
    ctrl_action="Действие?",
    ctrl_pause="Поставить на ПАУЗУ",
    ctrl_resume="Снять с паузы",
    ctrl_kill="Убить процесс (Kill)",
    ctrl_exit="Выход",
    pause_prompt="На сколько МИНУТ?",
    pause_activated="Пауза активирована на",
    pause_removed="Пауза снята.",
    process_killed="Процесс остановлен.",
    not_running="Демон не запущен.",
)

_TABLES = {"en": EN, "ru": RU}


def get_messages(language: str) -> Messages:
    """Return the message table for a language tag, falling back to English."""
    return _TABLES.get(language.lower(), EN)

DEBUG_MODE = False  # Quiet by default; hosts enable it with set_debug(True)


def set_debug(value):
    """
    Turn interpreter diagnostics on or off

    Args:
        value (bool): True to print diagnostics, False to silence them
    """
    global DEBUG_MODE
    DEBUG_MODE = bool(value)


def debug_print(text):
    """
    Prints an interpreter diagnostic line when debug mode is on.

    Args:
        text (str): The message to print.
    """
    if DEBUG_MODE:
        print(text)

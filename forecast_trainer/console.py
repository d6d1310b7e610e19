"""Console output helpers for the training run."""


def console_write_header(*lines: str) -> None:
    print(" ")
    for line in lines:
        print(line)
    max_length = max((len(line) for line in lines), default=0)
    print("#" * max_length)


def console_write_exception(*lines: str) -> None:
    exception_title = "EXCEPTION"
    print(" ")
    print(exception_title)
    print("#" * len(exception_title))
    for line in lines:
        print(line)


def console_press_any_key() -> None:
    """Block until the user presses Enter. A closed stdin ends the wait."""
    print(" ")
    try:
        input("Press Enter to finish.")
    except EOFError:
        pass

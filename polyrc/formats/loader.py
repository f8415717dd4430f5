_LOADED = False


def load_adapter_modules() -> None:
    global _LOADED
    if _LOADED:
        return

    from polyrc.formats import antigravity as _antigravity  # noqa: F401
    from polyrc.formats import claude as _claude  # noqa: F401
    from polyrc.formats import copilot as _copilot  # noqa: F401
    from polyrc.formats import cursor as _cursor  # noqa: F401
    from polyrc.formats import gemini as _gemini  # noqa: F401
    from polyrc.formats import windsurf as _windsurf  # noqa: F401

    _LOADED = True

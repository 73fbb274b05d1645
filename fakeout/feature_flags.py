import os

# Game behaviours that can be switched off per deployment with FF_<NAME>=false.
_DEFAULTS = {
    'auto_replenish': True,
    'content_prewarm': True,
}

_FLAGS = {}


def init_flags():
    _FLAGS.clear()
    _FLAGS.update(_DEFAULTS)
    for key, val in os.environ.items():
        if key.startswith('FF_'):
            flag_name = key[3:].lower()
            _FLAGS[flag_name] = val.lower() in ('true', '1', 'yes')


def is_enabled(flag_name: str) -> bool:
    return _FLAGS.get(flag_name, _DEFAULTS.get(flag_name, False))


def all_flags() -> dict:
    return dict(_FLAGS)


def set_flag(flag_name: str, value: bool):
    _FLAGS[flag_name] = value

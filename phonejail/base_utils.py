# phonejail/base_utils.py


import logging
import re


logger = logging.getLogger("phonejail")


def format_countdown(seconds: float) -> str:
    """``M:SS`` rendering of a remaining duration."""
    total = max(0, int(seconds))
    return f"{total // 60}:{total % 60:02d}"


def format_duration(seconds: float) -> str:
    """Human wording of a duration, hours when there are any, else minutes."""
    hours = int(seconds) // 3600
    minutes = int(seconds) // 60 % 60

    if hours > 0:
        return f"{hours} hour{'' if hours == 1 else 's'}"
    return f"{minutes} minute{'' if minutes == 1 else 's'}"


class BaseUtils():

    # -----------------------
    # General Utils
    # -----------------------

    def color_print(self, text, color=None):
        COLOR_CODES = {
            'black': '30', 'red': '31', 'green': '32', 'yellow': '33', 'blue': '34', 'magenta': '35',
            'cyan': '36', 'white': '37', 'bright_black': '90', 'bright_red': '91', 'bright_green': '92',
            'bright_yellow': '93', 'bright_blue': '94', 'bright_magenta': '95', 'bright_cyan': '96', 'bright_white': '97'
        }
        if color and color.lower() in COLOR_CODES:
            color_code = COLOR_CODES[color.lower()]
            start = f"\033[{color_code}m"
            end = "\033[0m"
            text = f"{start}{text}{end}"
        logger.info(str(text))
        return False

    def unsafe_string_format(self, dest_string, print_unused_keys_report=True, **kwargs):
        """
        Formats a destination string by replacing placeholders with corresponding values from kwargs.

        Unlike str.format it only substitutes the keys passed in kwargs, so braces that belong
        to the text itself (user statements, JSON) survive untouched. Placeholders without a
        matching key are left as they are and reported.
        """
        missing_keys = []

        def replacer(match):
            key = match.group(1)
            if key in kwargs:
                return str(kwargs[key])
            else:
                missing_keys.append(key)
                return match.group(0)

        pattern = re.compile(r'\{(\w+)\}')
        result = pattern.sub(replacer, dest_string)
        if missing_keys and print_unused_keys_report:
            logger.info(f"\033[93m\033[3mMissing keys within string-to-format in unsafe_string_format: {', '.join(missing_keys)}\033[0m")
        return result

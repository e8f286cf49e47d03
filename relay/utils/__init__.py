from relay.utils.log import log_debug, log_error, log_info, log_warning, set_log_level, use_default_handler

__all__ = ["log_debug", "log_info", "log_warning", "log_error", "set_log_level", "use_default_handler"]

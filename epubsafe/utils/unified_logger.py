"""
Unified logging system for epubsafe
Provides consistent console logging for the CLI and a callback bridge for core modules
"""
import sys
import os
from datetime import datetime
from typing import Optional, Dict, Any, Callable
from enum import Enum


class LogLevel(Enum):
    """Log levels with priority values"""
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class LogType(Enum):
    """Types of log messages for special handling"""
    GENERAL = "general"
    ORACLE_REQUEST = "oracle_request"
    ORACLE_RESPONSE = "oracle_response"
    PROGRESS = "progress"
    UNIT_INFO = "unit_info"
    VALIDATION = "validation"
    TRANSLATION_START = "translation_start"
    TRANSLATION_END = "translation_end"
    ERROR_DETAIL = "error_detail"


class Colors:
    """ANSI color codes for terminal output"""
    NO_COLOR = os.environ.get('NO_COLOR') is not None or not sys.stdout.isatty()

    YELLOW = '' if NO_COLOR else '\033[93m'
    WHITE = '' if NO_COLOR else '\033[97m'
    GRAY = '' if NO_COLOR else '\033[90m'
    ORANGE = '' if NO_COLOR else '\033[38;5;214m'
    GREEN = '' if NO_COLOR else '\033[92m'
    RED = '' if NO_COLOR else '\033[91m'
    ENDC = '' if NO_COLOR else '\033[0m'

    @classmethod
    def disable(cls):
        """Disable all colors"""
        cls.YELLOW = cls.WHITE = cls.GRAY = cls.ORANGE = cls.GREEN = cls.RED = cls.ENDC = ''


class UnifiedLogger:
    """
    Unified logger that provides consistent logging across all interfaces
    """

    def __init__(self,
                 name: str = "epubsafe",
                 console_output: bool = True,
                 enable_colors: bool = True,
                 min_level: LogLevel = LogLevel.INFO,
                 storage_callback: Optional[Callable] = None):
        """
        Initialize the unified logger

        Args:
            name: Logger name/identifier
            console_output: Whether to output to console
            enable_colors: Whether to use colored output
            min_level: Minimum log level to display
            storage_callback: Callback for storing structured log entries
        """
        self.name = name
        self.console_output = console_output
        self.enable_colors = enable_colors
        self.min_level = min_level
        self.storage_callback = storage_callback

        self.translation_state = {
            'current_unit': 0,
            'total_units': 0,
            'source_lang': '',
            'target_lang': '',
            'mode': '',
            'model': '',
            'start_time': None,
            'in_progress': False
        }

        if not enable_colors:
            Colors.disable()

    def _format_timestamp(self) -> str:
        """Format current timestamp"""
        return datetime.now().strftime("%H:%M:%S")

    def _format_console_message(self, level: LogLevel, message: str,
                                log_type: LogType = LogType.GENERAL,
                                data: Optional[Dict[str, Any]] = None) -> str:
        """Format message for console output"""
        timestamp = self._format_timestamp()

        level_colors = {
            LogLevel.DEBUG: Colors.GRAY,
            LogLevel.INFO: Colors.WHITE,
            LogLevel.WARNING: Colors.YELLOW,
            LogLevel.ERROR: Colors.RED,
            LogLevel.CRITICAL: Colors.RED
        }
        color = level_colors.get(level, Colors.WHITE)

        if log_type == LogType.ORACLE_REQUEST:
            return self._format_oracle_request(data or {})
        elif log_type == LogType.ORACLE_RESPONSE:
            return self._format_oracle_response(data or {})
        elif log_type == LogType.PROGRESS:
            return self._format_progress(data or {})
        elif log_type == LogType.TRANSLATION_START:
            return self._format_translation_start(message, data or {})
        elif log_type == LogType.TRANSLATION_END:
            return self._format_translation_end(message, data or {})
        elif log_type == LogType.VALIDATION:
            return self._format_validation(message, data or {})
        elif log_type == LogType.ERROR_DETAIL:
            return self._format_error_detail(message, data or {})
        else:
            level_str = f"[{level.name}]" if level != LogLevel.INFO else ""
            return f"{color}[{timestamp}] {level_str} {message}{Colors.ENDC}"

    def _format_oracle_request(self, data: Dict[str, Any]) -> str:
        """Format oracle request with full prompt"""
        output = [f"{Colors.YELLOW}{'=' * 80}{Colors.ENDC}"]
        output.append(f"{Colors.YELLOW}[{self._format_timestamp()}] SENDING TO ORACLE{Colors.ENDC}")
        if 'batch' in data:
            output.append(f"{Colors.GRAY}Batch: {data['batch']}/{data.get('total_batches', '?')}{Colors.ENDC}")
        if 'model' in data:
            output.append(f"{Colors.GRAY}Model: {data['model']}{Colors.ENDC}")
        output.append(f"\n{Colors.ORANGE}RAW PROMPT (INPUT):{Colors.ENDC}")
        if data.get('system_prompt'):
            output.append(f"{Colors.GRAY}[SYSTEM]{Colors.ENDC}")
            output.append(f"{Colors.ORANGE}{data['system_prompt']}{Colors.ENDC}")
        output.append(f"{Colors.GRAY}[USER]{Colors.ENDC}")
        output.append(f"{Colors.ORANGE}{data.get('prompt', '')}{Colors.ENDC}")
        return '\n'.join(output)

    def _format_oracle_response(self, data: Dict[str, Any]) -> str:
        """Format oracle response"""
        output = [f"{Colors.GREEN}[{self._format_timestamp()}] ORACLE RESPONSE (OUTPUT){Colors.ENDC}"]
        if 'execution_time' in data:
            output.append(f"{Colors.GRAY}Execution time: {data['execution_time']:.2f} seconds{Colors.ENDC}")
        if self.min_level == LogLevel.DEBUG:
            output.append(f"\n{Colors.GREEN}RAW RESPONSE:{Colors.ENDC}")
            output.append(f"{Colors.GREEN}{data.get('response', '')}{Colors.ENDC}")
        return '\n'.join(output)

    def _format_progress(self, data: Dict[str, Any]) -> str:
        """Format progress summary"""
        percentage = data.get('percentage', 0)
        current = data.get('current', self.translation_state['current_unit'])
        total = data.get('total', self.translation_state['total_units'])

        bar_length = 30
        filled = int(bar_length * percentage / 100)
        bar = '█' * filled + '░' * (bar_length - filled)
        return (f"\n{Colors.WHITE}PROGRESS: {current}/{total} units ({percentage:.1f}%){Colors.ENDC}\n"
                f"{Colors.WHITE}[{bar}] {percentage:.1f}%{Colors.ENDC}")

    def _format_translation_start(self, message: str, data: Dict[str, Any]) -> str:
        """Format translation start message"""
        self.translation_state.update({
            'source_lang': data.get('source_lang', 'Unknown'),
            'target_lang': data.get('target_lang', 'Unknown'),
            'mode': data.get('mode', 'single'),
            'model': data.get('model', 'Unknown'),
            'total_units': data.get('total_units', 0),
            'current_unit': 0,
            'start_time': datetime.now(),
            'in_progress': True
        })

        output = [f"{Colors.YELLOW}TRANSLATION STARTED{Colors.ENDC}"]
        output.append(f"{Colors.WHITE}Languages: {self.translation_state['source_lang']} → "
                      f"{self.translation_state['target_lang']}{Colors.ENDC}")
        output.append(f"{Colors.WHITE}Output mode: {self.translation_state['mode']}{Colors.ENDC}")
        output.append(f"{Colors.GRAY}Model: {self.translation_state['model']}{Colors.ENDC}")
        if 'input_file' in data:
            output.append(f"{Colors.GRAY}Input: {data['input_file']}{Colors.ENDC}")
        return '\n'.join(output)

    def _format_translation_end(self, message: str, data: Dict[str, Any]) -> str:
        """Format translation end message"""
        output = [f"\n{Colors.WHITE}TRANSLATION COMPLETE{Colors.ENDC}"]

        if self.translation_state['start_time']:
            duration = datetime.now() - self.translation_state['start_time']
            output.append(f"{Colors.GRAY}Duration: {duration}{Colors.ENDC}")

        if 'output_file' in data:
            output.append(f"{Colors.WHITE}Output saved to: {data['output_file']}{Colors.ENDC}")

        if 'stats' in data:
            stats = data['stats']
            output.append(f"{Colors.WHITE}Translated units: {stats.get('translated_units', 0)}{Colors.ENDC}")
            if stats.get('fallback_units', 0) > 0:
                output.append(f"{Colors.YELLOW}Fallback units (original kept): {stats['fallback_units']}{Colors.ENDC}")
            if stats.get('failed_units', 0) > 0:
                output.append(f"{Colors.RED}Failed units: {stats['failed_units']}{Colors.ENDC}")

        self.translation_state['in_progress'] = False
        return '\n'.join(output)

    def _format_validation(self, message: str, data: Dict[str, Any]) -> str:
        """Format structural validation issues"""
        output = [f"{Colors.YELLOW}[{self._format_timestamp()}] {message}{Colors.ENDC}"]
        for issue in data.get('issues', []):
            output.append(f"{Colors.YELLOW}  - {issue}{Colors.ENDC}")
        return '\n'.join(output)

    def _format_error_detail(self, message: str, data: Dict[str, Any]) -> str:
        """Format detailed error message"""
        output = [f"{Colors.RED}[{self._format_timestamp()}] ERROR: {message}{Colors.ENDC}"]
        if 'details' in data:
            output.append(f"{Colors.RED}Details: {data['details']}{Colors.ENDC}")
        if 'unit' in data:
            output.append(f"{Colors.RED}Unit: {data['unit']}{Colors.ENDC}")
        return '\n'.join(output)

    def log(self, level: LogLevel, message: str,
            log_type: LogType = LogType.GENERAL,
            data: Optional[Dict[str, Any]] = None):
        """
        Main logging method

        Args:
            level: Log level
            message: Log message
            log_type: Type of log for special formatting
            data: Additional data for the log entry
        """
        if level.value < self.min_level.value:
            return

        if log_type == LogType.UNIT_INFO and self.translation_state['in_progress']:
            self.translation_state['current_unit'] += 1

        if self.console_output:
            try:
                console_msg = self._format_console_message(level, message, log_type, data)
                if console_msg:
                    print(console_msg, flush=True)
            except UnicodeEncodeError:
                # cp1252 consoles on Windows
                safe_message = message.encode('ascii', 'replace').decode('ascii')
                print(f"[{self._format_timestamp()}] {safe_message}", flush=True)

        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'level': level.name,
            'type': log_type.value,
            'message': message,
            'data': data or {}
        }

        if self.storage_callback:
            self.storage_callback(log_entry)

    def debug(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.DEBUG, message, log_type, data)

    def info(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.INFO, message, log_type, data)

    def warning(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.WARNING, message, log_type, data)

    def error(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.ERROR, message, log_type, data)

    def critical(self, message: str, log_type: LogType = LogType.GENERAL, data: Optional[Dict[str, Any]] = None):
        self.log(LogLevel.CRITICAL, message, log_type, data)

    def update_total_units(self, total: int):
        """Update total units count"""
        self.translation_state['total_units'] = total

    def create_legacy_callback(self):
        """
        Create the log_callback(message_key, details, data) function used by core modules.

        Message keys are routed by convention: keys containing "error" log at ERROR,
        keys containing "warning" or "fallback" at WARNING, "debug" at DEBUG.
        """
        def legacy_callback(message: str, details: str = "", data: Optional[Dict[str, Any]] = None):
            if data and isinstance(data, dict):
                log_type = data.get('type')
                if log_type == 'oracle_request':
                    self.log(LogLevel.DEBUG, "Oracle Request", LogType.ORACLE_REQUEST, data)
                    return
                if log_type == 'oracle_response':
                    self.log(LogLevel.DEBUG, "Oracle Response", LogType.ORACLE_RESPONSE, data)
                    return
                if log_type == 'progress':
                    self.log(LogLevel.INFO, "Progress Update", LogType.PROGRESS, data)
                    return
                if log_type == 'validation':
                    self.log(LogLevel.WARNING, details or message, LogType.VALIDATION, data)
                    return

            key = message.lower()
            if message == "unit_start":
                self.log(LogLevel.INFO, details or message, LogType.UNIT_INFO, data)
            elif message == "units_collected" and data and 'total_units' in data:
                self.update_total_units(data['total_units'])
                self.info(details or message)
            elif "error" in key:
                self.error(details or message, data=data)
            elif "warning" in key or "fallback" in key:
                self.warning(details or message, data=data)
            elif "debug" in key:
                self.debug(details or message, data=data)
            else:
                self.info(details or message, data=data)

        return legacy_callback


# Global logger instance
_global_logger = None


def get_logger(name: str = "epubsafe", **kwargs) -> UnifiedLogger:
    """
    Get or create the global logger instance

    Args:
        name: Logger name
        **kwargs: Additional arguments for UnifiedLogger

    Returns:
        UnifiedLogger instance
    """
    global _global_logger
    if _global_logger is None:
        _global_logger = UnifiedLogger(name, **kwargs)
    elif 'storage_callback' in kwargs:
        _global_logger.storage_callback = kwargs['storage_callback']
    return _global_logger


def setup_cli_logger(enable_colors: bool = True) -> UnifiedLogger:
    """Setup logger for CLI usage"""
    # Import here to avoid circular dependencies
    from epubsafe.config import DEBUG_MODE

    return get_logger(
        console_output=True,
        enable_colors=enable_colors,
        min_level=LogLevel.DEBUG if DEBUG_MODE else LogLevel.INFO
    )


def log(level: LogLevel, message: str,
        log_type: LogType = LogType.GENERAL,
        data: Optional[Dict[str, Any]] = None):
    """Module-level logging function using the global logger."""
    get_logger().log(level, message, log_type, data)

"""
Logging utilities
"""
import logging
import logging.config
import time
import functools
from pathlib import Path
from typing import Callable, Any, Optional
import yaml
from config.settings import settings


def setup_logging(config_path: Optional[str] = None) -> None:
    """
    Initialise logging
    
    Args:
        config_path: path to a dictConfig YAML file (defaults to settings.log_config_path)
    """
    config_file = Path(config_path or settings.log_config_path)
    
    if config_file.exists():
        with open(config_file, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
            logging.config.dictConfig(config)
    else:
        # Fallback configuration
        logging.basicConfig(
            level=getattr(logging, settings.log_level.upper()),
            format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger
    
    Args:
        name: logger name
    
    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def log_execution_time(logger: logging.Logger = None):
    """
    Decorator that logs how long the wrapped call took
    
    Args:
        logger: logger to use (None = logger of the function's module)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            if logger is None:
                log = get_logger(func.__module__)
            else:
                log = logger
            
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                execution_time = time.time() - start_time
                log.info(
                    f"{func.__name__} completed in {execution_time:.3f}s"
                )
                return result
            except Exception as e:
                execution_time = time.time() - start_time
                log.error(
                    f"{func.__name__} failed after {execution_time:.3f}s - {type(e).__name__}: {str(e)}"
                )
                raise
        
        return wrapper
    return decorator

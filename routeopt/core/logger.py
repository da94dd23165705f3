"""
Logging setup for the routing core.
Provides centralized logging with console and optional file handlers.
"""

import logging
import os
from datetime import datetime
from typing import Optional


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logger(name: str = "routeopt", log_file: Optional[str] = None,
                 level: int = logging.INFO, log_dir: Optional[str] = None) -> logging.Logger:
    """
    Setup logger with console and (optionally) file handlers.
    
    Library modules only call ``logging.getLogger(__name__)``; applications
    call this once on the ``routeopt`` logger to get output.
    
    Args:
        name: Logger name (default: package root logger)
        log_file: Optional log file name. Written inside ``log_dir``.
        level: Logging level (default: INFO)
        log_dir: Directory for log files. No file handler when None.
        
    Returns:
        Configured logger instance
        
    Example:
        >>> logger = setup_logger(log_dir='logs')
        >>> logger.info("Starting ALNS...")
    """
    logger = logging.getLogger(name)
    
    # Avoid adding handlers multiple times
    if logger.handlers:
        return logger
    
    logger.setLevel(level)
    
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    
    if log_dir is not None:
        os.makedirs(log_dir, exist_ok=True)
        if log_file is None:
            timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
            log_file = f'routeopt_{timestamp}.log'
        log_path = os.path.join(log_dir, os.path.basename(log_file))
        
        file_handler = logging.FileHandler(log_path, encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        
        logger.info(f"Logger initialized. Log file: {log_path}")
    
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get existing logger or create new one with default settings.
    
    Args:
        name: Logger name
        
    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    
    if not logger.handlers:
        return setup_logger(name)
    
    return logger

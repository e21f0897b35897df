import logging
import sys
from typing import Union


def setup_logging(level: Union[int, str] = logging.INFO) -> logging.Logger:
    """Configure and return the root logger"""
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ],
        force=True,
    )

    # The OpenAI client logs every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return logging.getLogger()

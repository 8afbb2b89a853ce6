"""
Simulator process detection.

Only used for startup diagnostics: the SDK connection is what actually
decides whether the service is connected.
"""

import logging
from typing import Iterable, Optional

import psutil

logger = logging.getLogger(__name__)

# Main simulator executables only, not the background service
IRACING_SIM_PROCESSES = (
    'iRacingSim64DX11.exe',
    'iRacingSim.exe',
)


def find_sim_process(names: Iterable[str] = IRACING_SIM_PROCESSES) -> Optional[str]:
    """Return the name of a running simulator process, or None."""
    wanted = {name.lower() for name in names}
    try:
        for proc in psutil.process_iter(['name']):
            try:
                proc_name = proc.info['name']
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
            if proc_name and proc_name.lower() in wanted:
                return proc_name
    except psutil.Error as e:
        logger.debug(f"Error checking iRacing processes: {e}")
    return None

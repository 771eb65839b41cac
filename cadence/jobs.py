"""
Shell command handlers for schedules.

Executes shell commands with timeout and output logging. A command that
fails raises JobExecutionError, which stops the schedule running it.
"""

import logging
import os
import signal
import subprocess
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from cadence.models import Event

logger = logging.getLogger(__name__)


class JobExecutionError(Exception):
    """Raised when job execution fails."""
    pass


class CommandExecutor:
    """
    Executes shell commands and tracks the result of the last run.

    The executor knows nothing about what the command does.
    """

    def __init__(self):
        """Initialize command executor."""
        self.job_stats = {}  # Last result per job name

    def execute_command(
        self,
        command: str,
        timeout: Optional[float] = 3600,
        working_dir: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
        job_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Execute a shell command.

        Args:
            command: Shell command to execute
            timeout: Timeout in seconds (default: 1 hour)
            working_dir: Working directory for command execution
            env: Environment for the command (inherits the current one if None)
            job_name: Name of the job (for logging and stats)

        Returns:
            Dict with stdout, stderr, returncode

        Raises:
            JobExecutionError: If the command fails, times out, or cannot start
        """
        log_prefix = f"[{job_name}] " if job_name else ""
        logger.info(f"{log_prefix}Executing command: {command}")
        start_time = datetime.now()

        try:
            process = subprocess.Popen(
                command,
                shell=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                cwd=working_dir,
                env=env,
                start_new_session=True
            )

            stdout_lines = []
            stderr_lines = []

            def read_stream(stream, output_list):
                for line in stream:
                    line = line.rstrip('\n')
                    output_list.append(line)
                    logger.info(f"{log_prefix}{line}")

            stdout_thread = threading.Thread(target=read_stream, args=(process.stdout, stdout_lines))
            stderr_thread = threading.Thread(target=read_stream, args=(process.stderr, stderr_lines))
            stdout_thread.start()
            stderr_thread.start()

            try:
                process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                # Kill the whole process group so children holding the pipes exit too
                os.killpg(process.pid, signal.SIGKILL)
                process.wait()
                raise
            finally:
                stdout_thread.join()
                stderr_thread.join()

            stdout = '\n'.join(stdout_lines)
            stderr = '\n'.join(stderr_lines)

            if process.returncode != 0:
                raise JobExecutionError(
                    f"Command failed with exit code {process.returncode}: {stderr}"
                )

        except subprocess.TimeoutExpired as e:
            logger.error(f"{log_prefix}Command timed out after {timeout}s: {command}")
            self._record(job_name or command, 'failed', start_time, error=f"timed out after {timeout}s")
            raise JobExecutionError(f"Command timed out after {timeout}s") from e

        except JobExecutionError as e:
            self._record(job_name or command, 'failed', start_time,
                         returncode=process.returncode, error=str(e))
            raise

        except OSError as e:
            logger.error(f"{log_prefix}Command execution failed: {e}")
            self._record(job_name or command, 'failed', start_time, error=str(e))
            raise JobExecutionError(f"Command execution failed: {e}") from e

        self._record(job_name or command, 'success', start_time, returncode=process.returncode)
        return {
            'stdout': stdout,
            'stderr': stderr,
            'returncode': process.returncode
        }

    def _record(
        self,
        job_name: str,
        status: str,
        start_time: datetime,
        returncode: Optional[int] = None,
        error: Optional[str] = None
    ):
        end_time = datetime.now()
        duration = (end_time - start_time).total_seconds()
        self.job_stats[job_name] = {
            'job_name': job_name,
            'status': status,
            'duration_seconds': duration,
            'returncode': returncode,
            'error': error,
            'timestamp': end_time.isoformat()
        }
        if status == 'success':
            logger.info(f"[{job_name}] Completed successfully in {duration:.2f}s")

    def get_job_stats(self, job_name: str = None) -> Dict[str, Any]:
        """
        Get job execution statistics.

        Args:
            job_name: Specific job name, or None for all jobs

        Returns:
            Job statistics dictionary
        """
        if job_name:
            return self.job_stats.get(job_name, {})
        return self.job_stats


def command_handler(
    command: str,
    timeout: Optional[float] = 3600,
    working_dir: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    job_name: Optional[str] = None,
    executor: Optional[CommandExecutor] = None
) -> Callable[[Event], None]:
    """
    Build a schedule handler that runs a shell command on every event.

    The event timestamp is exported to the command as CADENCE_EVENT_TIME
    when an explicit ``env`` is not given.

    Returns:
        Handler raising JobExecutionError when the command fails
    """
    executor = executor or CommandExecutor()

    def handler(event: Event):
        run_env = env
        if run_env is None:
            run_env = dict(os.environ, CADENCE_EVENT_TIME=event.timestamp.isoformat())

        executor.execute_command(
            command,
            timeout=timeout,
            working_dir=working_dir,
            env=run_env,
            job_name=job_name
        )

    handler.executor = executor
    return handler

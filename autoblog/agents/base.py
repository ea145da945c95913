"""Base agent with validation logic."""

import logging
from typing import Any, Dict, Optional

from autoblog.services.llm_client import LLMClient, LLMResponseError

logger = logging.getLogger(__name__)


class BaseAgent:
    """Base class for pipeline stage agents.

    Stages run exactly once; a failed validation raises instead of retrying.
    """

    # Stage-specific model; None uses the model passed in or the client default
    MODEL: Optional[str] = None

    def __init__(self, llm_client: LLMClient, model: Optional[str] = None):
        """Initialize base agent."""
        self.llm = llm_client
        self.model = model or self.MODEL

    def execute(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute the agent once.

        Args:
            payload: Input payload dict

        Returns:
            Agent output dict

        Raises:
            LLMResponseError: If the output fails validation
        """
        name = self.__class__.__name__
        logger.info(f"Agent {name} started")

        result = self._run(payload)

        if not self._validate(result):
            logger.warning(f"Agent {name} validation failed")
            raise LLMResponseError(f"Agent {name} produced invalid output")

        logger.info(f"Agent {name} succeeded")
        return result

    def _run(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run the agent logic (to be implemented by subclasses).

        Args:
            payload: Input payload

        Returns:
            Output dict
        """
        raise NotImplementedError

    def _validate(self, result: Dict[str, Any]) -> bool:
        """
        Validate the agent output (to be overridden by subclasses).

        Args:
            result: Agent output

        Returns:
            True if valid, False otherwise
        """
        return True

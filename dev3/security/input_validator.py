"""
Input validation and sanitization for Dev3.

Provides:
- Decision payload validation with per-field violations
- Prompt injection flagging (decision text is forwarded to three LLMs)
- Secret redaction for context text and emitted events
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from dev3.core.errors import DecisionValidationError
from dev3.core.models import (
    DecisionCategory, DecisionInput, Priority, VoteChoice, VoteDraft, VoterId,
)


@dataclass
class ValidationResult:
    """Result of input validation with sanitized output."""
    is_valid: bool
    sanitized_input: str
    violations: List[str]
    redacted_secrets: List[str] = None

    def __post_init__(self):
        if self.redacted_secrets is None:
            self.redacted_secrets = []


class InputValidator:
    """
    Validation for decision payloads forwarded to the voters.

    Protects against:
    - Malformed payloads (missing fields, unknown enum values)
    - Prompt injection (OWASP LLM01) - flagged, not rejected
    - Sensitive data disclosure (OWASP LLM06)
    """

    # ============================================================================
    # Prompt Injection Patterns
    # ============================================================================

    PROMPT_INJECTION_PATTERNS = [
        (r'ignore\s+(all\s+)?(previous|above|prior|all)\s+(instructions?|prompts?|rules?)',
         'Instruction override attempt'),
        (r'you\s+are\s+now\s+(in\s+)?(admin|developer|debug|god)\s+mode',
         'Privilege escalation'),
        (r'<\s*/?system\s*>',
         'System tag injection'),
        (r'forget\s+(everything|all|previous)',
         'Memory manipulation'),
        (r'reveal\s+(your\s+)?(prompt|instructions|system)',
         'Prompt extraction'),
    ]

    # ============================================================================
    # Secret Patterns (OWASP LLM06)
    # ============================================================================

    SECRET_PATTERNS = {
        'openrouter_key': (r'sk-or-v1-[a-zA-Z0-9]{16,}', '[REDACTED_OPENROUTER_KEY]'),
        'openai_proj_key': (r'sk-proj-[a-zA-Z0-9_-]{12,}', '[REDACTED_OPENAI_PROJECT_KEY]'),
        'openai_key': (r'sk-[a-zA-Z0-9]{12,}', '[REDACTED_OPENAI_KEY]'),
        'github_token': (r'ghp_[a-zA-Z0-9]{12,}', '[REDACTED_GITHUB_TOKEN]'),
        'aws_key': (r'AKIA[0-9A-Z]{16}', '[REDACTED_AWS_KEY]'),
        'generic_bearer': (r'Bearer\s+[a-zA-Z0-9_\-\.]{16,}', 'Bearer [REDACTED_TOKEN]'),
        'solana_secret_key': (r'\b[1-9A-HJ-NP-Za-km-z]{87,88}\b', '[REDACTED_SOLANA_SECRET_KEY]'),
        'private_key_literal': (r'private[_-]?key\s*[:=]\s*["\']?([^"\'\s]{16,})["\']?', 'private_key=[REDACTED]'),
        'generic_api_key': (r'api[_-]?key\s*[:=]\s*["\']([a-zA-Z0-9_-]{16,})["\']', 'api_key=[REDACTED]'),
    }

    # ============================================================================
    # Input Limits
    # ============================================================================

    MAX_TITLE_LENGTH = 200
    MAX_DESCRIPTION_LENGTH = 10000
    MAX_CONTEXT_LENGTH = 50000

    UPDATABLE_FIELDS = ('title', 'description', 'context', 'category', 'priority')

    # ============================================================================
    # Validation Methods
    # ============================================================================

    def validate_decision(self, payload: Dict[str, Any]) -> DecisionInput:
        """
        Validate a raw decision payload.

        Returns:
            DecisionInput with sanitized fields.

        Raises:
            DecisionValidationError: with field -> [messages] detail.
        """
        violations: Dict[str, List[str]] = {}

        def add(field_name: str, message: str):
            violations.setdefault(field_name, []).append(message)

        title = payload.get('title')
        if not isinstance(title, str) or not title.strip():
            add('title', 'Title is required')
        elif len(title) > self.MAX_TITLE_LENGTH:
            add('title', f'Title exceeds maximum length ({len(title)} > {self.MAX_TITLE_LENGTH})')

        description = payload.get('description')
        if not isinstance(description, str) or not description.strip():
            add('description', 'Description is required')
        elif len(description) > self.MAX_DESCRIPTION_LENGTH:
            add('description', f'Description exceeds maximum length ({len(description)} > {self.MAX_DESCRIPTION_LENGTH})')

        category = self._parse_enum(DecisionCategory, payload.get('category'))
        if category is None:
            add('category', f"Invalid category. Expected one of: {[c.value for c in DecisionCategory]}")

        priority = self._parse_enum(Priority, payload.get('priority'))
        if priority is None:
            add('priority', f"Invalid priority. Expected one of: {[p.value for p in Priority]}")

        context = payload.get('context')
        if context is not None and not isinstance(context, str):
            add('context', 'Context must be a string')
            context = None

        if violations:
            raise DecisionValidationError(violations)

        if context:
            context = self.validate_context(context).sanitized_input

        return DecisionInput(
            title=title.strip(),
            description=description.strip(),
            category=category,
            priority=priority,
            context=context or None,
        )

    def validate_decision_update(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Validate a partial decision update. Only supplied fields are checked.

        Returns:
            Dict of typed field values ready for storage.

        Raises:
            DecisionValidationError: for invalid values or non-updatable fields.
        """
        violations: Dict[str, List[str]] = {}
        updates: Dict[str, Any] = {}

        for key in payload:
            if key not in self.UPDATABLE_FIELDS:
                violations.setdefault(key, []).append('Field cannot be updated')

        if 'title' in payload:
            title = payload['title']
            if not isinstance(title, str) or not title.strip():
                violations.setdefault('title', []).append('Title is required')
            elif len(title) > self.MAX_TITLE_LENGTH:
                violations.setdefault('title', []).append('Title exceeds maximum length')
            else:
                updates['title'] = title.strip()

        if 'description' in payload:
            description = payload['description']
            if not isinstance(description, str) or not description.strip():
                violations.setdefault('description', []).append('Description is required')
            elif len(description) > self.MAX_DESCRIPTION_LENGTH:
                violations.setdefault('description', []).append('Description exceeds maximum length')
            else:
                updates['description'] = description.strip()

        if 'category' in payload:
            category = self._parse_enum(DecisionCategory, payload['category'])
            if category is None:
                violations.setdefault('category', []).append('Invalid category')
            else:
                updates['category'] = category

        if 'priority' in payload:
            priority = self._parse_enum(Priority, payload['priority'])
            if priority is None:
                violations.setdefault('priority', []).append('Invalid priority')
            else:
                updates['priority'] = priority

        if 'context' in payload:
            context = payload['context']
            if context is not None and not isinstance(context, str):
                violations.setdefault('context', []).append('Context must be a string')
            else:
                updates['context'] = self.validate_context(context).sanitized_input if context else None

        if violations:
            raise DecisionValidationError(violations)
        return updates

    def validate_vote(self, payload: Dict[str, Any]) -> VoteDraft:
        """
        Validate a manually submitted vote.

        Unlike model output, submitted votes are not normalised: bad values
        are rejected with field detail.
        """
        violations: Dict[str, List[str]] = {}

        voter = self._parse_enum(VoterId, payload.get('model'))
        if voter is None:
            violations.setdefault('model', []).append(
                f"Invalid model. Expected one of: {[v.value for v in VoterId]}"
            )

        choice = self._parse_enum(VoteChoice, payload.get('vote'))
        if choice is None:
            violations.setdefault('vote', []).append(
                f"Invalid vote. Expected one of: {[c.value for c in VoteChoice]}"
            )

        reasoning = payload.get('reasoning')
        if not isinstance(reasoning, str) or not reasoning.strip():
            violations.setdefault('reasoning', []).append('Reasoning is required')

        confidence = payload.get('confidence')
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            violations.setdefault('confidence', []).append('Confidence must be a number')
        elif not 0 <= confidence <= 100:
            violations.setdefault('confidence', []).append('Confidence must be between 0 and 100')

        lists = {}
        for name in ('risks', 'recommendations'):
            raw = payload.get(name)
            if raw is None:
                lists[name] = []
            elif not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
                violations.setdefault(name, []).append(f'{name.capitalize()} must be a list of strings')
            else:
                lists[name] = list(raw)

        if violations:
            raise DecisionValidationError(violations)

        return VoteDraft(
            voter=voter,
            choice=choice,
            reasoning=reasoning,
            confidence=int(confidence),
            risks=lists['risks'],
            recommendations=lists['recommendations'],
        )

    def validate_context(self, context: str) -> ValidationResult:
        """
        Truncate and redact secrets from free-text decision context.

        Context is always valid after redaction.
        """
        violations = []
        redacted_secrets = []

        if len(context) > self.MAX_CONTEXT_LENGTH:
            violations.append(
                f"Context exceeds maximum length ({len(context)} > {self.MAX_CONTEXT_LENGTH})"
            )
            context = context[:self.MAX_CONTEXT_LENGTH]

        sanitized, found_secrets = self._redact_secrets(context)
        if found_secrets:
            redacted_secrets = found_secrets
            violations.extend([f"Redacted {secret_type}" for secret_type in found_secrets])

        return ValidationResult(
            is_valid=True,
            sanitized_input=sanitized,
            violations=violations,
            redacted_secrets=redacted_secrets
        )

    def check_prompt_injection(self, text: str) -> List[str]:
        """Detect prompt injection patterns."""
        violations = []

        for pattern, description in self.PROMPT_INJECTION_PATTERNS:
            if re.search(pattern, text, re.IGNORECASE):
                violations.append(f"Prompt injection risk: {description}")

        return violations

    # ============================================================================
    # Private Helpers
    # ============================================================================

    @staticmethod
    def _parse_enum(enum_cls, raw) -> Optional[Any]:
        if isinstance(raw, enum_cls):
            return raw
        if not isinstance(raw, str):
            return None
        try:
            return enum_cls(raw.strip().lower())
        except ValueError:
            return None

    def _redact_secrets(self, text: str) -> Tuple[str, List[str]]:
        """
        Redact secrets from text.

        Returns:
            Tuple of (redacted_text, list_of_secret_types_found)
        """
        result = text
        found_secrets = []

        for secret_type, (pattern, replacement) in self.SECRET_PATTERNS.items():
            matches = re.findall(pattern, result)
            if matches:
                found_secrets.append(secret_type)
                result = re.sub(pattern, replacement, result)

        return result, found_secrets

    def redact_output(self, output):
        """
        Redact secrets from an event before emission.

        Recursively scans all string values.
        """
        if isinstance(output, dict):
            return {k: self.redact_output(v) for k, v in output.items()}
        elif isinstance(output, list):
            return [self.redact_output(item) for item in output]
        elif isinstance(output, str):
            redacted, _ = self._redact_secrets(output)
            return redacted
        else:
            return output


# ============================================================================
# Convenience Functions
# ============================================================================

def validate_decision_payload(payload: Dict[str, Any]) -> DecisionInput:
    """Validate a decision payload with a fresh InputValidator."""
    return InputValidator().validate_decision(payload)

"""Prompt builder with per-model focus areas."""
import json
from typing import Optional, Union

from defi_watchdog.data_models import AnalysisMode, FocusArea, ModelDescriptor


FOCUS_ADDENDA = {
    FocusArea.CRITICAL_REASONING: """**CRITICAL VULNERABILITY FOCUS:**
- Look for complex attack vectors and edge cases
- Identify subtle reentrancy patterns
- Check for advanced access control bypasses
- Find logic bombs and backdoors
- Analyze state manipulation vulnerabilities""",
    FocusArea.PATTERN_ANALYSIS: """**PATTERN ANALYSIS FOCUS:**
- Identify anti-patterns and code smells
- Check for inconsistent implementations across functions
- Look for missing validations across functions
- Find architectural security issues""",
    FocusArea.DEFI_SECURITY: """**DEFI SECURITY FOCUS:**
- Check for flash loan vulnerabilities
- Identify price and oracle manipulation attacks
- Look for MEV and front-running opportunities
- Analyze liquidity and slippage issues""",
    FocusArea.GAS_EFFICIENCY: """**GAS OPTIMIZATION FOCUS:**
- Identify expensive operations and patterns
- Find storage packing opportunities
- Check for unnecessary computations
- Look for batching possibilities
- Analyze loop costs and storage access patterns""",
}

MODE_ADDENDA = {
    AnalysisMode.AGGRESSIVE: """**AGGRESSIVE MODE:**
Use an attacker's mindset. Assume malicious intent and look for any possible
economic attack vectors, hidden backdoors, privileged fund extraction
mechanisms and rug-pull patterns. Report anything an adversary could exploit.""",
    AnalysisMode.FOCUSED: """**FOCUSED MODE:**
Report only high-impact, exploitable issues. Skip stylistic remarks,
theoretical concerns and informational notes.""",
}


class PromptBuilder:
    """Builds specialized audit prompts; pure functions of their inputs."""

    def _get_output_schema(self) -> str:
        """Get the JSON output example every model is asked to follow."""
        schema = {
            "securityScore": 85,
            "findings": [
                {
                    "severity": "CRITICAL|HIGH|MEDIUM|LOW|INFO",
                    "category": "security|gas|quality",
                    "title": "Precise vulnerability name",
                    "description": "Technical explanation referencing exact code",
                    "location": "Exact function name or line reference",
                    "impact": "What an attacker gains or the contract loses",
                    "recommendation": "Specific, actionable fix",
                    "confidence": "HIGH|MEDIUM|LOW",
                }
            ],
            "gasOptimizations": [
                {
                    "title": "Specific optimization opportunity",
                    "description": "What can be optimized and why",
                    "location": "Function or pattern location",
                    "savings": "Estimated gas saved",
                }
            ],
            "summary": "Overall assessment",
        }
        return json.dumps(schema, indent=2)

    def _get_base_template(self) -> str:
        """Get the base audit instruction block."""
        return """You are an elite smart contract security auditor with specialized expertise in {FOCUS}.

CONTRACT: {CONTRACT_NAME}

**YOUR EXPERTISE:** {FOCUS}

**MISSION:** Conduct a deep security audit focusing on your specialty while identifying all critical vulnerabilities.

**CRITICAL INSTRUCTIONS:**
- ONLY analyze the provided contract code
- NEVER invent vulnerabilities or functions that don't exist
- Quote exact function names in "location"
- Give specific, actionable remediation
- Prioritize by actual risk and impact"""

    def build_system_prompt(self, model: ModelDescriptor) -> str:
        """System preamble sent ahead of the user prompt."""
        return (
            f"You are an expert smart contract auditor specializing in {model.focus}. "
            "Always respond with valid JSON only."
        )

    def build_prompt(
        self,
        model: ModelDescriptor,
        contract_name: str,
        mode: Union[AnalysisMode, str] = AnalysisMode.NORMAL,
        custom_prompt: Optional[str] = None,
    ) -> str:
        """
        Build the user prompt for one model.

        Args:
            model: Model the prompt is specialized for
            contract_name: Name of the contract under review
            mode: normal, aggressive or focused
            custom_prompt: User-supplied prompt replacing the built-in one

        Returns:
            Prompt text ending with the output schema and a JSON-only instruction
        """
        output_schema = self._get_output_schema()

        if custom_prompt and custom_prompt.strip():
            return (
                f"{custom_prompt.strip()}\n\n"
                "CRITICAL: You MUST return valid JSON in this exact format:\n"
                f"{output_schema}\n\n"
                "Return ONLY the JSON object. JSON only, no prose."
            )

        mode = AnalysisMode(mode)
        # replace() rather than format() so braces in names survive
        prompt = self._get_base_template()
        prompt = prompt.replace("{FOCUS}", model.focus)
        prompt = prompt.replace("{CONTRACT_NAME}", contract_name)

        sections = [prompt]
        if model.focus_area in FOCUS_ADDENDA:
            sections.append(FOCUS_ADDENDA[model.focus_area])
        if mode in MODE_ADDENDA:
            sections.append(MODE_ADDENDA[mode])
        sections.append(f"**RETURN ONLY VALID JSON IN THIS FORMAT:**\n{output_schema}")
        sections.append("JSON only, no prose.")
        return "\n\n".join(sections)

    def build_user_message(self, prompt: str, contract_source: str) -> str:
        """Append the fenced contract source to the prompt."""
        return f"{prompt}\n\n**CONTRACT TO ANALYZE:**\n```solidity\n{contract_source}\n```"

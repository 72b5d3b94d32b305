JUDGE_PREAMBLE = "You are an impartial AI judge. Read the case facts and all arguments, then produce a verdict."

CASE_TEXT_SECTION = "Case text:\n{text}"
LAWYER_A_SECTION = "Lawyer A initial text:\n{text}"
LAWYER_B_SECTION = "Lawyer B initial text:\n{text}"
ARGUMENTS_SECTION = "Arguments so far:\n{arguments}"
ARGUMENT_LINE = "{index}. [{side}] {text}"

JUDGE_FORMAT_INSTRUCTIONS = """
Provide your response in valid JSON format with these exact keys:

{"verdict": "your decision here", "reasoning": "your brief explanation in 2-3 sentences", "confidence": 75}

The verdict should state which lawyer you favor. Keep reasoning under 100 words. Confidence is 0-100.

Return ONLY the JSON object without markdown code blocks. No ```json wrapper."""

SUMMARIZE_PROMPT = """Summarize the following legal text concisely:

{text}"""

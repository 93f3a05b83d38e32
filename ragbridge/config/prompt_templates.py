"""
ragbridge - Prompt Templates
=============================
Centralised prompt text for the augmentation stage.  All prompt strings
live here so they can be versioned and reviewed independently of the
code that assembles them.

Exports
-------
COMPARISON_INSTRUCTIONS, STEP_BY_STEP_INSTRUCTIONS, CODE_INSTRUCTIONS,
SUMMARIZATION_INSTRUCTIONS, CONTEXT_USAGE_GUIDELINES,
RESPONSE_QUALITY_GUIDELINES, ENHANCED_RAG_PROMPT_TEMPLATE,
DOCUMENT_HEADER_TEMPLATE, UNKNOWN_SOURCE.
"""

# ══════════════════════════════════════════════════════════════════════
#  QUERY-SPECIFIC INSTRUCTION BLOCKS
# ══════════════════════════════════════════════════════════════════════
# Each block starts with a newline so it sits one line below the
# retrieved context when spliced into the template.

COMPARISON_INSTRUCTIONS: str = """
COMPARISON INSTRUCTIONS:
- Create a structured comparison between the items mentioned in the query
- Include key similarities and differences
- Use a table format when appropriate
- Present balanced information about all items being compared"""

STEP_BY_STEP_INSTRUCTIONS: str = """
INSTRUCTIONAL CONTENT GUIDELINES:
- Provide clear step-by-step instructions
- Number each step
- Include important cautions or warnings
- Add examples where helpful
- Consider both beginners and more experienced users"""

CODE_INSTRUCTIONS: str = """
CODE GENERATION GUIDELINES:
- Write clean, well-commented code
- Include explanations for complex logic
- Consider edge cases and error handling
- Optimize for readability and maintainability
- Provide usage examples where appropriate"""

SUMMARIZATION_INSTRUCTIONS: str = """
SUMMARIZATION GUIDELINES:
- Extract the key points from the context
- Be concise but comprehensive
- Structure the summary logically
- Maintain the original meaning and intent
- Highlight the most important information"""


# ══════════════════════════════════════════════════════════════════════
#  FIXED GUIDELINE BLOCKS
# ══════════════════════════════════════════════════════════════════════

CONTEXT_USAGE_GUIDELINES: str = """INSTRUCTIONS FOR USING CONTEXT:
1. Use the retrieved context to provide accurate and informed responses
2. Prioritize information from the context when directly relevant to the query
3. Always evaluate the reliability and relevance of the context information
4. When citing information from the context, indicate the source if available
5. If the context is insufficient, use your general knowledge to supplement
6. Do not invent or hallucinate information that's not in the context or your knowledge
7. If asked about the source of information, be transparent about whether it came from the retrieved context"""

RESPONSE_QUALITY_GUIDELINES: str = """RESPONSE QUALITY GUIDELINES:
- Be thorough but concise
- Structure your response logically with appropriate headings if needed
- Use examples when they aid understanding
- Consider different perspectives when appropriate
- Focus on answering the user's actual needs, not just the literal query
- If the user's question is unclear, request clarification"""


# ══════════════════════════════════════════════════════════════════════
#  ENHANCED PROMPT TEMPLATE
# ══════════════════════════════════════════════════════════════════════
# Fields: base_prompt, context, query_instructions, usage_guidelines,
# quality_guidelines.  Substituted values are never re-parsed, so braces
# inside the base prompt or the documents are safe.

ENHANCED_RAG_PROMPT_TEMPLATE: str = """{base_prompt}

RETRIEVED CONTEXT:
{context}

{query_instructions}

{usage_guidelines}

{quality_guidelines}
"""


# ══════════════════════════════════════════════════════════════════════
#  RETRIEVED DOCUMENT RENDERING
# ══════════════════════════════════════════════════════════════════════

DOCUMENT_HEADER_TEMPLATE: str = "[Document {index}]:\n{content}"

UNKNOWN_SOURCE: str = "Unknown"

"""Prompt text for design critiques.

The proxy and the core must agree byte-for-byte on a request, so everything
here is static text; only ``app.engine.payload`` fills in the design data.
"""

from __future__ import annotations

CRITIQUE_SYSTEM_PROMPT = """You are a senior UX/UI designer and design consultant providing detailed, actionable design critiques. Your expertise covers visual design, user experience, accessibility, and design systems.

CRITICAL REQUIREMENTS:
- Be SPECIFIC about what to change, not general
- Always explain HOW TO FIX each issue with concrete steps
- Explain WHY each change will improve the design
- Reference actual elements, colors, fonts mentioned in the data
- Give measurable recommendations (specific pixel values, color codes, etc.)

Your critique should be comprehensive but focused, covering:
1. Visual Hierarchy & Layout Issues
2. Typography & Readability Problems
3. Color Usage & Accessibility Concerns
4. Spacing & Alignment Issues
5. Component Organization & Consistency
6. User Experience & Usability

FORMAT REQUIREMENTS:
- Use numbered section headers (e.g., "1. Visual Hierarchy Issues:")
- Use bullet points (•) for each specific recommendation
- Each bullet should include: Problem + Solution + Reason
- Be direct and actionable
- No asterisks (*) in your response"""

CRITIQUE_USER_TEMPLATE = """Analyze this Figma design and provide a detailed, specific critique:

=== DESIGN ANALYSIS DATA ===
Total Elements: {count} components
Element Types: {types}
Colors Detected: {colors}
Fonts Used: {fonts}
Text Content: {text}
Canvas Size: {width}px × {height}px

=== COMPONENT BREAKDOWN ===
{breakdown}

=== PROJECT CONTEXT ===
{context}

=== CRITIQUE REQUEST ===
Provide a detailed, actionable design critique. For each issue you identify:

1. WHAT: Clearly describe the specific problem
2. HOW: Give exact steps to fix it (specific values, actions)
3. WHY: Explain how this improves the design

Be specific about the actual elements, colors, and fonts mentioned above. Don't give generic advice - reference the real data from this design.

Example format:
• Problem: The primary button uses rgb(100, 150, 200) which has poor contrast
• Solution: Change to rgb(0, 86, 179) for 4.5:1 contrast ratio
• Why: Ensures WCAG AA compliance and better readability

Analyze the specific elements, colors, and text content provided. Give actionable, measurable recommendations."""

# Sentinels for empty sections
NO_COLORS = "None detected"
NO_FONTS = "None detected"
NO_TEXT = "No text content found"
NO_CONTEXT = "General design review - no specific context provided"


def get_all_templates() -> dict[str, str]:
    """Return all templates (for the /prompts endpoint)."""
    return {
        "system": CRITIQUE_SYSTEM_PROMPT,
        "user": CRITIQUE_USER_TEMPLATE,
    }

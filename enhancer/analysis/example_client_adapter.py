"""Example analysis client adapter.

Use this module as a reference when implementing new provider adapters.
Implement BaseAnalysisClient and register the provider in AnalyzerFactory.
"""

import json
from typing import ClassVar

from enhancer.analysis.client_base import BaseAnalysisClient


class ExampleClientAdapter(BaseAnalysisClient):
    """Example adapter that answers every prompt with a fixed, valid JSON.

    No network calls. The canned answers describe a mid-quality worksheet
    (muddled fonts, weak contrast, uneven spacing), so a pipeline driven by
    this adapter passes the quality gate and plans real enhancements.
    """

    DEFAULT_RESPONSES: ClassVar[dict[str, dict[str, object]]] = {
        "layout_analysis": {
            "structure": "single-column",
            "sections": [
                {"type": "header", "bounds": {"x": 0, "y": 0, "width": 100, "height": 15}, "content": "Title"},
                {"type": "content", "bounds": {"x": 5, "y": 18, "width": 90, "height": 60}, "content": "Body"},
                {"type": "footer", "bounds": {"x": 0, "y": 90, "width": 100, "height": 10}, "content": "Footer"},
            ],
            "margins": {"top": 40, "right": 40, "bottom": 40, "left": 40},
            "spacing": {
                "line_height": 1.4,
                "paragraph_spacing": 18,
                "element_spacing": 24,
                "consistency_score": 65,
            },
            "grid": {"has_grid": False, "columns": 0, "gutters": 0, "baseline": 0},
            "alignment": {
                "primary": "mixed",
                "score": 62,
                "issues": ["Body text is indented inconsistently"],
            },
            "whitespace": {"percentage": 18, "distribution": "uneven"},
            "balance": {"horizontal": 68, "vertical": 72, "overall": 70},
        },
        "color_analysis": {
            "dominant_colors": ["#1F2937", "#F59E0B", "#10B981", "#FFFFFF", "#9CA3AF"],
            "palette": {
                "primary": "#1F2937",
                "secondary": "#F59E0B",
                "accent": "#10B981",
                "neutrals": ["#FFFFFF", "#9CA3AF"],
                "background": "#FFFFFF",
                "text": "#9CA3AF",
            },
            "harmony": {"type": "triadic", "effectiveness": 60},
            "contrast": {
                "overall_score": 70,
                "issues": [
                    {"foreground": "#9CA3AF", "background": "#FFFFFF", "ratio": 2.5, "location": "body text"},
                ],
            },
            "properties": {"temperature": "neutral", "saturation": "moderate"},
        },
        "typography_analysis": {
            "fonts": {
                "count": 3,
                "families": ["Arial", "Comic Sans MS", "Times New Roman"],
                "pairing_score": 55,
            },
            "sizes": {"count": 5, "ratios": [1.5, 1.1, 1.3, 1.2]},
            "readability": {"line_length": 85, "line_height": 1.3},
            "hierarchy": {"levels": 3, "clarity": 65},
        },
        "hierarchy_analysis": {
            "levels": [
                {"importance": 100, "elements": ["Title"], "visual_weight": 75},
                {"importance": 60, "elements": ["Section headings", "Body"], "visual_weight": 50},
            ],
            "flow": {"pattern": "Z-pattern", "score": 66},
            "emphasis": {"balance": 70},
        },
        "engagement_analysis": {
            "visual_appeal": 62,
            "readability": 70,
            "professional_score": 72,
            "emotional_impact": {"energy": 55, "trust": 74, "creativity": 48},
            "predicted_engagement": 60,
        },
        "strategy_refinement": {
            "approach": "moderate",
            "priority": ["color", "layout", "typography", "visuals"],
            "estimated_impact": 55,
        },
        "color_plan": {
            "primary_color": "#2563EB",
            "secondary_color": "#64748B",
            "accent_color": "#F59E0B",
            "background_color": "#FFFFFF",
            "text_color": "#1F2937",
            "adjustments": [
                {
                    "target": "text",
                    "from": "#9CA3AF",
                    "to": "#1F2937",
                    "reason": "Darken body text to meet contrast guidelines",
                },
            ],
        },
        "typography_plan": {
            "heading_font": {"family": "Montserrat", "weight": 700, "fallback": ["Helvetica Neue", "Arial", "sans-serif"]},
            "body_font": {"family": "Open Sans", "weight": 400, "fallback": ["Helvetica", "Arial", "sans-serif"]},
            "sizes": {"h1": 39, "h2": 31, "h3": 25, "body": 16, "caption": 13},
            "line_height": 1.6,
            "letter_spacing": 0,
        },
        "layout_plan": {
            "grid": {"columns": 12, "gutter": 24, "margin": 48},
            "sections": [],
            "whitespace_adjustments": [{"area": "spacing", "value": 24, "unit": "px"}],
        },
        "asset_plan": {
            "backgrounds": [
                {"style": "gradient", "theme": "soft", "colors": ["#EFF6FF", "#DBEAFE"], "opacity": 0.12},
            ],
            "decorative_elements": [
                {"type": "shape", "style": "geometric", "quantity": 2, "placement": "corners"},
            ],
            "educational_graphics": [
                {"type": "illustration", "style": "flat", "width": 400, "height": 300},
            ],
        },
    }

    def __init__(self) -> None:
        pass

    def analyze_image(
        self,
        *,
        model: str,
        temperature: float,
        prompt: str,
        image_bytes: bytes,
        schema_name: str,
        json_schema: dict[str, object],
    ) -> str:
        _ = model, temperature, prompt, image_bytes, json_schema
        return json.dumps(self.DEFAULT_RESPONSES.get(schema_name, {}))

    def generate(
        self,
        *,
        model: str,
        temperature: float,
        prompt: str,
        schema_name: str,
        json_schema: dict[str, object],
    ) -> str:
        _ = model, temperature, prompt, json_schema
        return json.dumps(self.DEFAULT_RESPONSES.get(schema_name, {}))

from enhancer.analysis.analyzer import Analyzer, Prompt
from enhancer.analysis.factory import AnalyzerFactory

__all__ = ["Analyzer", "AnalyzerFactory", "Prompt"]

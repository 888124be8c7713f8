# Pipeline stages module
from .stage1_firewall import HeuristicFirewall
from .stage2_classifier import EntityClassifier
from .stage3_scorer import MatchScorer

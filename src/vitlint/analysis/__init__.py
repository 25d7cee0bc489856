from vitlint.analysis.fn_call import (
    FnCallKind,
    FnCallParser,
    ParsedExpectCall,
    ParsedFnCall,
    determine_fn_type,
)
from vitlint.analysis.rule import Diagnostic, Rule, RuleContext, RuleDocs, RuleMeta, create_rule

__all__ = [
    "Diagnostic",
    "FnCallKind",
    "FnCallParser",
    "ParsedExpectCall",
    "ParsedFnCall",
    "Rule",
    "RuleContext",
    "RuleDocs",
    "RuleMeta",
    "create_rule",
    "determine_fn_type",
]

"""Pickaxe packet handler code generator."""

from .classifier import PacketSets as PacketSets
from .classifier import classify as classify
from .merge import MergeError as MergeError
from .merge import Region as Region
from .merge import merge as merge
from .parser import SchemaError as SchemaError
from .parser import load as load
from .parser import load_dir as load_dir
from .pipeline import GeneratorConfig as GeneratorConfig
from .pipeline import Pipeline as Pipeline
from .pipeline import generate as generate
from .resolver import TypeResolver as TypeResolver
from .typeexpr import TypeExpr as TypeExpr
from .typeexpr import TypeExpressionError as TypeExpressionError
from .typeexpr import parse_type as parse_type
from .types import *

"""
slotaudit - Slither Loader
Builds contract models from slither's compiled view of a project. Unlike the
source reader this sees inherited state variables in linearized order.
"""

import logging

from crytic_compile.platform.exceptions import InvalidCompilation
from slither import Slither
from slither.exceptions import SlitherError

from .errors import SourceError
from .models import ContractModel, DeclaredVariable
from .source_parser import normalize_type

log = logging.getLogger(__name__)


def _contract_kind(contract) -> str:
    if contract.is_interface:
        return "interface"
    if contract.is_library:
        return "library"
    return "contract"


def contract_from_slither(contract, file_path: str = "") -> ContractModel:
    """Convert a slither Contract into a ContractModel."""
    variables = [
        DeclaredVariable(
            name=var.name,
            type_name=normalize_type(str(var.type)),
            visibility=var.visibility,
            is_constant=var.is_constant,
            is_immutable=var.is_immutable,
        )
        for var in contract.state_variables_ordered
    ]
    return ContractModel(
        name=contract.name,
        variables=variables,
        base_contracts=[parent.name for parent in contract.inheritance],
        kind=_contract_kind(contract),
        file_path=file_path,
    )


def load_contracts(target: str) -> list[ContractModel]:
    """Compile `target` with slither and return a model per contract."""
    try:
        slither = Slither(target)
    except (SlitherError, InvalidCompilation) as e:
        raise SourceError(f"Slither could not load {target}: {e}") from e

    contracts = [contract_from_slither(c, target) for c in slither.contracts]
    log.info(f"Slither: {len(contracts)} contract(s) in {target}")
    return contracts

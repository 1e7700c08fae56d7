"""Virtual machine energy estimates from Terraform JSON documents."""

from dataclasses import dataclass
from typing import Any, Iterator

import structlog

from app.services.energy_calculator import HOURS_PER_DAY
from app.services.energy_profiles import get_nominal_tdp

logger = structlog.get_logger()

VM_RESOURCE_TYPES = frozenset(
    {
        "azurerm_virtual_machine",
        "azurerm_linux_virtual_machine",
        "azurerm_windows_virtual_machine",
    }
)

# azurerm_virtual_machine uses vm_size, the linux/windows resources use size
VM_SIZE_ATTRIBUTES = ("vm_size", "size")


class TerraformDocumentError(ValueError):
    """Raised when a document has none of the known Terraform JSON layouts."""


@dataclass(frozen=True)
class TerraformVirtualMachine:
    address: str
    vm_size: str
    instances: int = 1


@dataclass(frozen=True)
class VirtualMachineEnergy:
    vm: TerraformVirtualMachine
    watts_per_instance: float
    kwh: float


def iter_terraform_resources(document: Any) -> Iterator[dict[str, Any]]:
    """
    Yield resource blocks from any supported Terraform JSON layout.

    Supported layouts:
        - ``terraform show -json`` of a state (``values.root_module``)
        - ``terraform show -json`` of a plan (``planned_values.root_module``)
        - raw state files and flat exports (top-level ``resources``)

    Child modules are walked recursively.

    Raises:
        TerraformDocumentError: If the document matches none of the layouts
    """
    if not isinstance(document, dict):
        raise TerraformDocumentError("Terraform document must be a JSON object")

    root_module = None
    for section in ("values", "planned_values"):
        if isinstance(document.get(section), dict) and "root_module" in document[section]:
            root_module = document[section]["root_module"]
            break

    if root_module is not None:
        yield from _walk_module(root_module)
    elif isinstance(document.get("resources"), list):
        yield from (r for r in document["resources"] if isinstance(r, dict))
    else:
        raise TerraformDocumentError(
            "Terraform document has no 'values.root_module', "
            "'planned_values.root_module' or 'resources' section"
        )


def _walk_module(module: dict[str, Any]) -> Iterator[dict[str, Any]]:
    for resource in module.get("resources") or []:
        if isinstance(resource, dict):
            yield resource
    for child in module.get("child_modules") or []:
        if isinstance(child, dict):
            yield from _walk_module(child)


def _vm_size(*attribute_sets: Any) -> str | None:
    for attributes in attribute_sets:
        if not isinstance(attributes, dict):
            continue
        for key in VM_SIZE_ATTRIBUTES:
            value = attributes.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def _address(resource: dict[str, Any]) -> str:
    if resource.get("address"):
        return str(resource["address"])
    module = resource.get("module")
    local = f"{resource.get('type')}.{resource.get('name', 'unnamed')}"
    return f"{module}.{local}" if module else local


def extract_virtual_machines(document: Any) -> tuple[list[TerraformVirtualMachine], int]:
    """
    Find the Azure virtual machines declared in a Terraform document.

    Returns:
        Tuple of (virtual machines, number of VM resources skipped for lack of a size)
    """
    vms: list[TerraformVirtualMachine] = []
    skipped = 0

    for resource in iter_terraform_resources(document):
        if resource.get("type") not in VM_RESOURCE_TYPES or resource.get("mode") == "data":
            continue

        address = _address(resource)
        instances = resource.get("instances")
        if isinstance(instances, list):
            # State-file layout: one attributes block per instance
            first = instances[0] if instances else {}
            size = _vm_size(
                first.get("attributes") if isinstance(first, dict) else None,
                resource.get("values"),
                resource,
            )
            count = len(instances)
        else:
            size = _vm_size(resource.get("values"), resource)
            count = 1

        if count == 0:
            continue
        if size is None:
            skipped += 1
            logger.warning("terraform.vm_without_size", address=address)
            continue

        vms.append(TerraformVirtualMachine(address=address, vm_size=size, instances=count))

    return vms, skipped


def estimate_vm_energy(
    vm: TerraformVirtualMachine, elapsed_days: float, utilization_factor: float
) -> VirtualMachineEnergy:
    """kWh = instances x nominal TDP x hours x utilization / 1000."""
    watts = get_nominal_tdp(vm.vm_size)
    hours = max(0.0, elapsed_days) * HOURS_PER_DAY
    kwh = vm.instances * watts * hours * utilization_factor / 1000.0
    logger.debug(
        "terraform.vm_calculated",
        address=vm.address,
        vm_size=vm.vm_size,
        instances=vm.instances,
        watts=watts,
        kwh=round(kwh, 4),
    )
    return VirtualMachineEnergy(vm=vm, watts_per_instance=watts, kwh=kwh)

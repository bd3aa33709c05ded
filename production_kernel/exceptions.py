"""
Typed Exception Hierarchy for the Production Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers must be able to react to a failure without parsing message text:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example:
    try:
        work_orders.transition(order_id, "completed")
    except InvalidTransitionError as e:
        api_response(code=e.code, current=e.current_status, requested=e.requested_status)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from ProductionKernelError:

    ProductionKernelError (base)
    |
    +-- NotFoundError
    |   +-- MaterialNotFoundError
    |   +-- ProductNotFoundError
    |   +-- WorkOrderNotFoundError
    |   +-- WorkOrderItemNotFoundError
    |   +-- FormulaLineNotFoundError
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- InvalidDirectionError
    |   +-- DuplicateMaterialCodeError
    |   +-- DuplicateProductNameError
    |   +-- DuplicateFormulaLineError
    |   +-- MissingDescriptionError
    |   +-- ProductInactiveError
    |
    +-- InvalidTransitionError
    |   +-- WorkOrderLockedError
    |
    +-- ReferencedError
    |   +-- MaterialReferencedError
    |   +-- ProductReferencedError
    |
    +-- UnavailableError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
NotFound        | NOT_FOUND                   | Referenced entity does not exist
                | MATERIAL_NOT_FOUND          | Material ID doesn't exist
                | PRODUCT_NOT_FOUND           | Product ID doesn't exist
                | WORK_ORDER_NOT_FOUND        | Work order ID doesn't exist
                | WORK_ORDER_ITEM_NOT_FOUND   | Item ID not part of the work order
                | FORMULA_LINE_NOT_FOUND      | Formula line ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Malformed or contradictory input
                | INVALID_QUANTITY            | Quantity out of the allowed range
                | INVALID_DIRECTION           | Movement direction not in/out
                | DUPLICATE_MATERIAL_CODE     | Material code already taken
                | DUPLICATE_PRODUCT_NAME      | Product name already taken
                | DUPLICATE_FORMULA_LINE      | Material already in the formula
                | MISSING_DESCRIPTION         | Work order without description/notes
                | PRODUCT_INACTIVE            | Ordering an inactive product
----------------|-----------------------------|-----------------------------------------
Transition      | INVALID_TRANSITION          | Illegal work order state change
                | WORK_ORDER_LOCKED           | Order can no longer be deleted
----------------|-----------------------------|-----------------------------------------
Referenced      | MATERIAL_REFERENCED         | Material has movements or formula use
                | PRODUCT_REFERENCED          | Product is used by work orders
----------------|-----------------------------|-----------------------------------------
Unavailable     | UNAVAILABLE                 | Store I/O failure or timeout
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Modifying a movement or consumption

===============================================================================
DESIGN DECISIONS
===============================================================================

1. Stock insufficiency is NOT an exception anywhere.  Feasibility and
   reconciliation report shortages as warning strings; only malformed input,
   missing entities and illegal transitions raise.

2. UnavailableError is flagged ``retryable = True``.  The kernel itself never
   retries; the flag lets an outer layer decide.

===============================================================================
"""


class ProductionKernelError(Exception):
    """
    Base exception for all production kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PRODUCTION_KERNEL_ERROR"
    retryable: bool = False


# Not-found exceptions


class NotFoundError(ProductionKernelError):
    """A referenced entity does not exist."""

    code: str = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} not found: {entity_id}")


class MaterialNotFoundError(NotFoundError):
    """Material with given ID was not found."""

    code: str = "MATERIAL_NOT_FOUND"

    def __init__(self, material_id: str):
        self.material_id = material_id
        super().__init__("Material", material_id)


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__("Product", product_id)


class WorkOrderNotFoundError(NotFoundError):
    """Work order with given ID was not found."""

    code: str = "WORK_ORDER_NOT_FOUND"

    def __init__(self, work_order_id: str):
        self.work_order_id = work_order_id
        super().__init__("WorkOrder", work_order_id)


class WorkOrderItemNotFoundError(NotFoundError):
    """Work order item with given ID was not found."""

    code: str = "WORK_ORDER_ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__("WorkOrderItem", item_id)


class FormulaLineNotFoundError(NotFoundError):
    """Formula line with given ID was not found."""

    code: str = "FORMULA_LINE_NOT_FOUND"

    def __init__(self, line_id: str):
        self.line_id = line_id
        super().__init__("FormulaLine", line_id)


# Validation exceptions


class ValidationError(ProductionKernelError):
    """Input is malformed or contradictory."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class InvalidQuantityError(ValidationError):
    """A quantity is outside its allowed range."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, field: str, value: object, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {field} {value}: {reason}", field=field)


class InvalidDirectionError(ValidationError):
    """Movement direction is not one of in/out."""

    code: str = "INVALID_DIRECTION"

    def __init__(self, direction: str):
        self.direction = direction
        super().__init__(
            f"Invalid movement direction '{direction}' (expected 'in' or 'out')",
            field="direction",
        )


class DuplicateMaterialCodeError(ValidationError):
    """Another material already uses this code."""

    code: str = "DUPLICATE_MATERIAL_CODE"

    def __init__(self, material_code: str):
        self.material_code = material_code
        super().__init__(
            f"Material code already exists: {material_code}", field="code",
        )


class DuplicateProductNameError(ValidationError):
    """Another product already uses this name."""

    code: str = "DUPLICATE_PRODUCT_NAME"

    def __init__(self, product_name: str):
        self.product_name = product_name
        super().__init__(
            f"Product name already exists: {product_name}", field="name",
        )


class DuplicateFormulaLineError(ValidationError):
    """The material is already part of the product's formula."""

    code: str = "DUPLICATE_FORMULA_LINE"

    def __init__(self, product_id: str, material_id: str):
        self.product_id = product_id
        self.material_id = material_id
        super().__init__(
            f"Material {material_id} is already in the formula of product {product_id}",
            field="material_id",
        )


class MissingDescriptionError(ValidationError):
    """A work order needs a description or notes."""

    code: str = "MISSING_DESCRIPTION"

    def __init__(self):
        super().__init__(
            "Work order requires a description or notes", field="description",
        )


class ProductInactiveError(ValidationError):
    """An inactive product cannot be ordered."""

    code: str = "PRODUCT_INACTIVE"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product {product_id} is inactive", field="product_id")


# State-transition exceptions


class InvalidTransitionError(ProductionKernelError):
    """Requested work order state change is not allowed."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, current_status: str, requested_status: str):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Cannot transition work order from '{current_status}' "
            f"to '{requested_status}'"
        )


class WorkOrderLockedError(InvalidTransitionError):
    """Work order has progressed too far to be deleted."""

    code: str = "WORK_ORDER_LOCKED"

    def __init__(self, work_order_id: str, current_status: str):
        self.work_order_id = work_order_id
        super().__init__(current_status, "deleted")


# Reference exceptions


class ReferencedError(ProductionKernelError):
    """Entity cannot be removed while other records reference it."""

    code: str = "REFERENCED"


class MaterialReferencedError(ReferencedError):
    """Material has movements or appears in a formula."""

    code: str = "MATERIAL_REFERENCED"

    def __init__(self, material_id: str, movement_count: int, formula_count: int):
        self.material_id = material_id
        self.movement_count = movement_count
        self.formula_count = formula_count
        super().__init__(
            f"Material {material_id} is referenced by {movement_count} movement(s) "
            f"and {formula_count} formula line(s)"
        )


class ProductReferencedError(ReferencedError):
    """Product is used by work order items."""

    code: str = "PRODUCT_REFERENCED"

    def __init__(self, product_id: str, item_count: int):
        self.product_id = product_id
        self.item_count = item_count
        super().__init__(
            f"Product {product_id} is referenced by {item_count} work order item(s)"
        )


# Store availability


class UnavailableError(ProductionKernelError):
    """
    The store failed or timed out.

    Raised in place of driver-level errors so callers never depend on the
    database driver.  Not retried automatically.
    """

    code: str = "UNAVAILABLE"
    retryable: bool = True

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store unavailable during {operation}: {reason}")


# Immutability exceptions


class ImmutabilityError(ProductionKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Movements and consumption records are append-only.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )

import logging
import postgrest.exceptions

from realty_api.errors import StoreError

logger = logging.getLogger(__name__)

async def handle_supabase_operation(operation_name: str, operation, error_msg: str):
    """
    Generic handler for Supabase operations with consistent error handling and logging.

    Args:
        operation_name: Name of the operation for logging
        operation: Awaitable store call to execute
        error_msg: Message attached to the raised StoreError if the operation fails

    Returns:
        The result of the operation

    Raises:
        StoreError: If operation fails
    """
    try:
        result = await operation
        logger.debug(f"Successfully completed {operation_name}")
        return result
    except postgrest.exceptions.APIError as e:
        logger.error(f"Failed to {operation_name}: %s", str(e), exc_info=True)
        raise StoreError(operation_name, error_msg, code=e.code) from e
    except Exception as e:
        logger.error(f"Failed to {operation_name}: %s", str(e), exc_info=True)
        raise StoreError(operation_name, error_msg) from e

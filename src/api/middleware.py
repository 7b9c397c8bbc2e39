"""
API middleware
"""
import time
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from src.utils.logger import get_logger
from src.utils.helpers import mask_personal_info

logger = get_logger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Request logging middleware"""
    
    async def dispatch(self, request: Request, call_next):
        """Log the request and its outcome"""
        start_time = time.time()
        
        client_ip = request.client.host if request.client else "unknown"
        method = request.method
        path = request.url.path
        
        logger.info(
            f"Request: {method} {path} - IP: {client_ip}"
        )
        
        # body at DEBUG with contact details masked
        if request.method in ["POST", "PUT", "PATCH"]:
            try:
                body = await request.body()
                body_str = body.decode("utf-8")
                masked_body = mask_personal_info(body_str)
                logger.debug(f"Request body: {masked_body}")
            except Exception as e:
                logger.warning(f"Could not log request body: {str(e)}")
        
        try:
            response = await call_next(request)
            
            process_time = time.time() - start_time
            
            logger.info(
                f"Response: {method} {path} - "
                f"status {response.status_code} - "
                f"{process_time:.3f}s"
            )
            
            response.headers["X-Process-Time"] = str(process_time)
            
            return response
        
        except Exception as e:
            process_time = time.time() - start_time
            logger.error(
                f"Request failed: {method} {path} - "
                f"{str(e)} - "
                f"{process_time:.3f}s"
            )
            raise

"""
Custom exceptions for the routing core.
Provides specific exception classes for different error types.
"""


class VRPException(Exception):
    """Base exception for the routing core."""
    
    def __init__(self, message: str = "", details: dict = None):
        """
        Initialize VRP exception.
        
        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class InfeasibleInstanceError(VRPException):
    """Raised when no feasible solution exists for the given customers and fleet."""
    
    def __init__(self, reason: str = None, customer_id: int = None):
        """
        Initialize infeasible instance error.
        
        Args:
            reason: Why the instance cannot be served
            customer_id: Customer that cannot be served, if a single one is to blame
        """
        message = "Problem instance is infeasible"
        details = {}
        
        if customer_id is not None:
            details['customer_id'] = customer_id
        if reason:
            details['reason'] = reason
            message += f": {reason}"
        
        super().__init__(message, details)


class InvalidConfigurationError(VRPException, ValueError):
    """Raised when configuration parameters are invalid."""
    
    def __init__(self, parameter: str = None, value: any = None, 
                 expected: str = None):
        """
        Initialize invalid configuration error.
        
        Args:
            parameter: Parameter name
            value: Invalid value
            expected: Expected value or range
        """
        message = "Invalid configuration parameter"
        details = {}
        
        if parameter:
            details['parameter'] = parameter
        if value is not None:
            details['value'] = value
        if expected:
            details['expected'] = expected
        
        if parameter:
            message += f": {parameter} = {value}"
            if expected:
                message += f" (expected: {expected})"
        
        super().__init__(message, details)


class DecodingError(VRPException):
    """Raised when a giant tour cannot be decoded."""
    
    def __init__(self, giant_tour: list = None, reason: str = None):
        """
        Initialize decoding error.
        
        Args:
            giant_tour: Giant tour that failed to decode
            reason: Reason for failure
        """
        message = "Giant tour decoding failed"
        details = {}
        
        if giant_tour is not None:
            details['tour_length'] = len(giant_tour)
        if reason:
            details['reason'] = reason
            message += f": {reason}"
        
        super().__init__(message, details)


class SolutionIntegrityError(VRPException):
    """Raised when a solution breaks the coverage or uniqueness invariant."""
    
    def __init__(self, missing: list = None, duplicated: list = None,
                 unknown: list = None, reason: str = None):
        """
        Initialize solution integrity error.
        
        Args:
            missing: Customers served by no route
            duplicated: Customers served more than once
            unknown: Ids that are not customers of the problem
            reason: Free-form reason (e.g. a vehicle used twice)
        """
        message = "Solution integrity violated"
        details = {}
        
        if missing:
            details['missing'] = sorted(missing)
        if duplicated:
            details['duplicated'] = sorted(duplicated)
        if unknown:
            details['unknown'] = sorted(unknown)
        if reason:
            details['reason'] = reason
            message += f": {reason}"
        
        super().__init__(message, details)

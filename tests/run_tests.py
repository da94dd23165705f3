"""
routeopt test runner.
Runs all unit tests and provides detailed output.
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def run_tests():
    """Run all unit tests."""
    loader = unittest.TestLoader()
    start_dir = os.path.dirname(os.path.abspath(__file__))
    suite = loader.discover(start_dir, pattern='test_*.py')
    
    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)
    
    print(f"\n{'='*60}")
    print("TEST SUMMARY")
    print(f"{'='*60}")
    print(f"Tests run: {result.testsRun}")
    print(f"Failures: {len(result.failures)}")
    print(f"Errors: {len(result.errors)}")
    if result.testsRun:
        passed = result.testsRun - len(result.failures) - len(result.errors)
        print(f"Success rate: {passed / result.testsRun * 100:.1f}%")
    
    for title, entries in (("FAILURES", result.failures), ("ERRORS", result.errors)):
        if entries:
            print(f"\n{title}:")
            for test, _ in entries:
                print(f"  {test}")
    
    return result.wasSuccessful()


if __name__ == '__main__':
    success = run_tests()
    sys.exit(0 if success else 1)

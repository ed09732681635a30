#!/usr/bin/env python3

"""hdrtools-unittest.py: hdrtools unittest base.

Operation:
$ ./*_unittest.py  # run all the tests
$ ./*_unittest.py --list_tests  # list all available tests
$ ./*_unittest.py --filter <filter>
where:
  <filter> := <test_filter_item> [":" <test_filter_item>]*
  <test_filter_item> := <test_function>.<test_name>
  <test_function> := <string> | "*"
  <test_name> := <string> | "*"

Examples:
```
$ ./*_unittest.py --filter TestFunction:TestFunction2.t*
$ ./*_unittest.py --filter *.TestName:*.TestName2*
```
"""

import argparse
import fnmatch
import numpy as np
import os
import sys
import tempfile
import unittest


# overridden by main() when run as a script
FILTER = None
LIST_TESTS = False


class TestCase(unittest.TestCase):
    def getTestCases(self, function_name, test_case_list):
        list_tests = LIST_TESTS
        filter_string = FILTER

        if list_tests:
            print(f" {function_name}.")
            for test_case in test_case_list:
                print(f"  {function_name}.{test_case['name']}")
            self.skipTest("list test")

        return self.filterTestCases(function_name, test_case_list, filter_string)

    def filterTestCases(self, function_name, test_case_list, filter_string):
        if not filter_string:
            return test_case_list

        # each filter item is of the form TestFunction.TestName, supports '*'
        filters = filter_string.split(":")
        matched_test_case_name_list = set()
        for filt in filters:
            try:
                func_pat, case_pat = filt.split(".", 1)
            except ValueError:
                continue  # skip invalid filters
            if fnmatch.fnmatch(function_name, func_pat):
                for test_case in test_case_list:
                    if fnmatch.fnmatch(test_case["name"], case_pat):
                        matched_test_case_name_list.add(test_case["name"])
        matched_test_case_list = []
        for test_case in test_case_list:
            if test_case["name"] in matched_test_case_name_list:
                matched_test_case_list.append(test_case)
        return list(matched_test_case_list)

    # returns a temporary file name, removed at test cleanup
    def getTempFile(self, prefix, suffix):
        fd, path = tempfile.mkstemp(prefix=prefix, suffix=suffix)
        os.close(fd)
        os.remove(path)
        self.addCleanup(lambda: os.path.exists(path) and os.remove(path))
        return path

    # function to compare 2 half-float arrays bit-for-bit
    @classmethod
    def compareHalf(cls, arr, expected_arr, label):
        np.testing.assert_array_equal(
            np.asarray(arr, dtype="<f2").view("<u2"),
            np.asarray(expected_arr, dtype="<f2").view("<u2"),
            err_msg=f"error on {label} case",
        )


def main(argv):
    global FILTER
    global LIST_TESTS

    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--list_tests",
        action="store_true",
        dest="list_tests",
        default=False,
        help="List Tests",
    )
    parser.add_argument(
        "--filter",
        dest="filter",
        default=None,
        metavar="filter",
        help="Filter String",
    )

    options, unknown_options = parser.parse_known_args()
    FILTER = options.filter
    LIST_TESTS = options.list_tests
    # clean sys.argv before passing to unittest
    sys.argv = [sys.argv[0]] + unknown_options
    unittest.main()

# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

from testx.cli import main

if __name__ == "__main__":
    main()

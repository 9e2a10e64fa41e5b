# Copyright 2025 Accelerated Cloud Storage Corporation. All Rights Reserved.

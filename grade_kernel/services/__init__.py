"""Services for the grade kernel (write side).

Import concrete services from their modules
(``grade_kernel.services.approval_service`` and friends).  Action handlers
import services and the approval service imports the action runner, so this
package does not import its submodules eagerly.
"""

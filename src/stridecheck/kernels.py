"""
OpenCL C sources for the two strided copy directions.

Both kernels zero their local buffer first and take the same arguments:
(src, dst, localBuffer, copiesPerWorkgroup, copiesPerWorkItem, stride).
"""

from .schema import CopyDirection, ElementType, TransferSpec


KERNEL_NAME = "test_fn"

_SIGNATURE = (
    "__kernel void test_fn( const __global {t} *src, __global {t} *dst, __local {t} *localBuffer, "
    "int copiesPerWorkgroup, int copiesPerWorkItem, int stride )\n"
)

_ZERO_LOCAL = (
    " for(i=0; i<copiesPerWorkItem; i++)\n"
    "   localBuffer[ get_local_id( 0 )*copiesPerWorkItem+i ] = ({t})({scalar})0;\n"
    " barrier( CLK_LOCAL_MEM_FENCE );\n"
)

GLOBAL_TO_LOCAL_TEMPLATE = (
    "{pragma}\n"
    + _SIGNATURE
    + "{{\n"
    " int i;\n"
    + _ZERO_LOCAL
    + " event_t event;\n"
    " event = async_work_group_strided_copy( (__local {t}*)localBuffer, "
    "(__global const {t}*)(src+copiesPerWorkgroup*stride*get_group_id(0)), "
    "(size_t)copiesPerWorkgroup, (size_t)stride, 0 );\n"
    " wait_group_events( 1, &event );\n"
    " for(i=0; i<copiesPerWorkItem; i++)\n"
    "   dst[ get_global_id( 0 )*copiesPerWorkItem*stride+i*stride ] = "
    "localBuffer[ get_local_id( 0 )*copiesPerWorkItem+i ];\n"
    "}}\n"
)

LOCAL_TO_GLOBAL_TEMPLATE = (
    "{pragma}\n"
    + _SIGNATURE
    + "{{\n"
    " int i;\n"
    + _ZERO_LOCAL
    + " for(i=0; i<copiesPerWorkItem; i++)\n"
    "   localBuffer[ get_local_id( 0 )*copiesPerWorkItem+i ] = "
    "src[ get_global_id( 0 )*copiesPerWorkItem*stride+i*stride ];\n"
    " barrier( CLK_LOCAL_MEM_FENCE );\n"
    " event_t event;\n"
    " event = async_work_group_strided_copy((__global {t}*)(dst+copiesPerWorkgroup*stride*get_group_id(0)), "
    "(__local const {t}*)localBuffer, (size_t)copiesPerWorkgroup, (size_t)stride, 0 );\n"
    " wait_group_events( 1, &event );\n"
    "}}\n"
)

_TEMPLATES = {
    CopyDirection.GLOBAL_TO_LOCAL: GLOBAL_TO_LOCAL_TEMPLATE,
    CopyDirection.LOCAL_TO_GLOBAL: LOCAL_TO_GLOBAL_TEMPLATE,
}


def extension_pragma(element_type: ElementType) -> str:
    """Pragma enabling the extension an element type needs, or ''."""
    if element_type == ElementType.DOUBLE:
        return "#pragma OPENCL EXTENSION cl_khr_fp64 : enable"
    if element_type == ElementType.HALF:
        return "#pragma OPENCL EXTENSION cl_khr_fp16 : enable"
    return ""


def render_kernel(direction: CopyDirection, spec: TransferSpec) -> str:
    """Fill the template for a copy direction with the transfer's vector type."""
    return _TEMPLATES[direction].format(
        pragma=extension_pragma(spec.element_type),
        t=spec.type_name,
        scalar=spec.element_type.value,
    )
